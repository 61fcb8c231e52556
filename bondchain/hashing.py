"""
History Hash

The ledger chains every accepted answer into the question's history hash:

    new = keccak256(abi.encodePacked(
        previous_history_hash,  # bytes32
        answer_or_commitment_id,  # bytes32
        bond,                   # uint256
        answerer,               # address
        is_commitment,          # bool
    ))

This must match the contract bit for bit. If it drifts, every offline
verification here disagrees with the remote verifier.
"""

from web3 import Web3

from .numbers import to_bytes32_hex

HISTORY_HASH_TYPES = ["bytes32", "bytes32", "uint256", "address", "bool"]


def compute_history_hash(
    previous_hash: str,
    answer_id: str,
    bond: int,
    answerer: str,
    is_commitment: bool = False,
) -> str:
    """Compute the history hash that results from applying one answer."""
    digest = Web3.solidity_keccak(
        HISTORY_HASH_TYPES,
        [
            to_bytes32_hex(previous_hash),
            to_bytes32_hex(answer_id),
            int(bond),
            Web3.to_checksum_address(answerer),
            bool(is_commitment),
        ],
    )
    return to_bytes32_hex(bytes(digest))
