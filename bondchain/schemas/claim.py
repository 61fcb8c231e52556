"""
Claim Chain Schema

The exact argument list the remote verifier needs to settle a question.

Four aligned sequences, one shared index:

    history_hashes[i]  state BEFORE answer i was applied
    addresses[i]       who posted answer i
    bonds[i]           raw bond of answer i
    answers[i]         answer id of answer i

Index 0 is the most recent answer; the last index is the oldest one,
whose "before" hash is NULL_HASH.

Write-once. Consumed by exactly one claim submission.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ClaimChain(BaseModel):
    model_config = ConfigDict(frozen=True)

    history_hashes: tuple[str, ...] = Field(default_factory=tuple)
    addresses: tuple[str, ...] = Field(default_factory=tuple)
    bonds: tuple[int, ...] = Field(default_factory=tuple)
    answers: tuple[str, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def _check_aligned(self) -> "ClaimChain":
        lengths = {
            len(self.history_hashes),
            len(self.addresses),
            len(self.bonds),
            len(self.answers),
        }
        if len(lengths) != 1:
            raise ValueError(
                "Claim chain sequences must have equal length, got "
                f"hashes={len(self.history_hashes)}, addresses={len(self.addresses)}, "
                f"bonds={len(self.bonds)}, answers={len(self.answers)}"
            )
        return self

    def __len__(self) -> int:
        return len(self.answers)

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    def as_args(self) -> tuple[list[str], list[str], list[int], list[str]]:
        """The four lists in claimWinnings argument order."""
        return (
            list(self.history_hashes),
            list(self.addresses),
            list(self.bonds),
            list(self.answers),
        )
