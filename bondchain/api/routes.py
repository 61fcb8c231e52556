"""
Settlement API Routes

Thin HTTP surface over OracleService. Every request is a fresh read
of the ledger; nothing is cached between requests.

Error mapping:
- SourceUnavailable                -> 503
- SubmissionRejected, CallReverted -> 422 with the remote reason, verbatim
- Malformed ids and addresses      -> 400
- Nothing to claim                 -> 200 {"submitted": false}
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel
from web3 import Web3

from ..core import OracleService
from ..gateway import CallReverted, SourceUnavailable, SubmissionRejected
from ..numbers import to_bytes32_hex
from ..schemas import QuestionBonds


router = APIRouter(prefix="/api", tags=["Settlement"])


# ============================================================
# Response Models
# ============================================================

class QuestionResponse(BaseModel):
    question_id: str
    exists: bool
    status: str
    best_answer: str
    finalize_ts: int
    history_hash: str
    bond: Decimal
    bounty: Decimal
    is_finalized: bool
    is_claimed: bool
    is_pending_arbitration: bool


class BondsResponse(BaseModel):
    question_id: str
    user: Optional[str] = None
    answers: dict[str, Decimal]
    total: Decimal


class ClaimChainResponse(BaseModel):
    question_id: str
    entries: int
    history_hashes: list[str]
    addresses: list[str]
    bonds: list[str]  # raw base units, as strings to survive JSON clients
    answers: list[str]


class ClaimResponse(BaseModel):
    question_id: str
    submitted: bool
    tx_hash: Optional[str] = None


# ============================================================
# Helpers
# ============================================================

def get_service(request: Request) -> OracleService:
    """Get the service from app state."""
    return request.app.state.service


def _question_id(raw: str) -> str:
    try:
        return to_bytes32_hex(raw)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid question id: {e}",
        )


def _user_address(raw: str) -> str:
    if not Web3.is_address(raw):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid address: {raw}",
        )
    return raw


def _unavailable(e: SourceUnavailable) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Ledger unavailable: {e}",
    )


def _rejected(e) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"reason": e.reason, "method": e.method},
    )


# ============================================================
# Endpoints
# ============================================================

@router.get("/questions/{question_id}", response_model=QuestionResponse)
def get_question(question_id: str, request: Request):
    """Current state of a question. Unknown ids return exists=false."""
    qid = _question_id(question_id)
    try:
        question = get_service(request).get_question(qid)
    except SourceUnavailable as e:
        raise _unavailable(e)

    return QuestionResponse(
        question_id=question.entity_id,
        exists=question.exists,
        status=question.status,
        best_answer=question.best_answer,
        finalize_ts=question.finalize_ts,
        history_hash=question.history_hash,
        bond=question.bond,
        bounty=question.bounty,
        is_finalized=question.is_finalized,
        is_claimed=question.is_claimed,
        is_pending_arbitration=question.is_pending_arbitration,
    )


@router.get("/questions/{question_id}/bonds", response_model=BondsResponse)
def get_bonds(question_id: str, request: Request, user: Optional[str] = None):
    """Bond totals per answer, optionally for one user."""
    qid = _question_id(question_id)
    if user is not None:
        user = _user_address(user)
    try:
        ledger = get_service(request).get_bonds_by_answer(qid, user=user)
    except SourceUnavailable as e:
        raise _unavailable(e)

    return BondsResponse(
        question_id=qid,
        user=user,
        answers=ledger.answers,
        total=ledger.grand_total,
    )


@router.get("/questions/{question_id}/result")
def get_result(question_id: str, request: Request):
    """Final answer. 422 until the question is finalized."""
    qid = _question_id(question_id)
    try:
        answer = get_service(request).get_result_for_question(qid)
    except SourceUnavailable as e:
        raise _unavailable(e)
    except CallReverted as e:
        raise _rejected(e)
    return {"question_id": qid, "result": answer}


@router.get("/questions/{question_id}/claim-chain", response_model=ClaimChainResponse)
def get_claim_chain(question_id: str, request: Request):
    """The arguments a claim would submit right now."""
    qid = _question_id(question_id)
    try:
        chain = get_service(request).preview_claim(qid)
    except SourceUnavailable as e:
        raise _unavailable(e)

    history_hashes, addresses, bonds, answers = chain.as_args()
    return ClaimChainResponse(
        question_id=qid,
        entries=len(chain),
        history_hashes=history_hashes,
        addresses=addresses,
        bonds=[str(b) for b in bonds],
        answers=answers,
    )


@router.post("/questions/{question_id}/claim", response_model=ClaimResponse)
def claim(question_id: str, request: Request):
    """Claim winnings. submitted=false means nothing to claim."""
    qid = _question_id(question_id)
    try:
        handle = get_service(request).claim_winnings(qid)
    except SourceUnavailable as e:
        raise _unavailable(e)
    except SubmissionRejected as e:
        raise _rejected(e)

    if handle is False:
        return ClaimResponse(question_id=qid, submitted=False)
    return ClaimResponse(question_id=qid, submitted=True, tx_hash=handle.tx_hash)


@router.get("/accounts/{user}/bonds", response_model=dict[str, QuestionBonds])
def get_account_bonds(user: str, request: Request):
    """Every bond a user has posted, grouped per question."""
    user = _user_address(user)
    try:
        return get_service(request).get_my_bonds(user)
    except SourceUnavailable as e:
        raise _unavailable(e)
