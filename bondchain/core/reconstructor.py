"""
Claim Chain Reconstruction

Turns the answer log into the argument list of claimWinnings.

The remote verifier starts at the question's current history hash and
walks BACKWARD. For each entry i it checks

    keccak(history_hashes[i], answers[i], bonds[i], addresses[i], is_commitment)
        == hash it currently holds

then moves to history_hashes[i]. It must end on NULL_HASH.

So, for events e_0 .. e_{n-1} in ledger order:
- addresses / bonds / answers are all n events, newest first
- history_hashes[i] is the hash BEFORE event i was applied, i.e. the
  "after" hash of the previous event: e_{n-2} .. e_0, then NULL_HASH

    hashes:   [h_{n-2}, h_{n-3}, ..., h_0, NULL]   (length n)
    answers:  [a_{n-1}, a_{n-2}, ..., a_1, a_0]    (length n)

Off by one here and the verifier rejects the whole claim.
"""

from typing import Sequence

from ..hashing import compute_history_hash
from ..numbers import NULL_HASH, to_bytes32_hex
from ..schemas import AnswerEvent, ClaimChain


class ChainError(Exception):
    """Raised when a claim chain cannot be built from the given input."""
    pass


class ChainReconstructor:
    """Builds ClaimChains. Stateless."""

    def reconstruct(self, events: Sequence[AnswerEvent]) -> ClaimChain:
        """
        Build the claim chain for one question.

        Args:
            events: That question's answers in ascending ledger order

        Returns:
            ClaimChain (empty for no events; callers must not submit it)
        """
        if not events:
            return ClaimChain()

        question_ids = {e.entity_id for e in events}
        if len(question_ids) > 1:
            raise ChainError(
                f"Events span {len(question_ids)} questions; a claim chain covers exactly one"
            )

        # Drop the newest "after" hash: it is the current on-ledger hash,
        # which the verifier already holds.
        history_hashes = [e.history_hash_after for e in events[:-1]]
        history_hashes.reverse()
        history_hashes.append(NULL_HASH)

        newest_first = list(reversed(events))

        return ClaimChain(
            history_hashes=tuple(history_hashes),
            addresses=tuple(e.user for e in newest_first),
            bonds=tuple(e.bond_amount for e in newest_first),
            answers=tuple(e.answer_id for e in newest_first),
        )


def verify_claim_chain(
    chain: ClaimChain,
    current_history_hash: str,
    commitments: Sequence[bool] = (),
) -> bool:
    """
    Replay the remote verifier's walk locally.

    Diagnostic only: a False here predicts a remote rejection, but the
    ledger may have moved since `current_history_hash` was read, so the
    settlement flow never gates on it.

    Args:
        chain: Reconstructed chain
        current_history_hash: The question's history hash on the ledger
        commitments: is_commitment flag per chain entry (default all False)

    Returns:
        True if the walk lands on NULL_HASH
    """
    if chain.is_empty:
        return to_bytes32_hex(current_history_hash) == NULL_HASH

    flags = list(commitments) or [False] * len(chain)
    if len(flags) != len(chain):
        raise ChainError(
            f"Got {len(flags)} commitment flags for a chain of {len(chain)} entries"
        )

    expected = to_bytes32_hex(current_history_hash)
    for prev_hash, address, bond, answer, is_commitment in zip(
        chain.history_hashes, chain.addresses, chain.bonds, chain.answers, flags
    ):
        if compute_history_hash(prev_hash, answer, bond, address, is_commitment) != expected:
            return False
        expected = to_bytes32_hex(prev_hash)

    return expected == NULL_HASH
