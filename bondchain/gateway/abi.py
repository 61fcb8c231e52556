"""
Oracle contract ABI.

Only the fragments the settlement core touches. Layout follows the
ERC20 flavour of the oracle (questions struct without min_bond).
"""


def _fn(name, inputs, outputs=None, mutability="view"):
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in (outputs or [])],
        "stateMutability": mutability,
    }


ORACLE_ABI = [
    _fn(
        "questions",
        [("", "bytes32")],
        [
            ("content_hash", "bytes32"),
            ("arbitrator", "address"),
            ("opening_ts", "uint32"),
            ("timeout", "uint32"),
            ("finalize_ts", "uint32"),
            ("is_pending_arbitration", "bool"),
            ("bounty", "uint256"),
            ("best_answer", "bytes32"),
            ("history_hash", "bytes32"),
            ("bond", "uint256"),
        ],
    ),
    _fn("isFinalized", [("question_id", "bytes32")], [("", "bool")]),
    _fn("getBestAnswer", [("question_id", "bytes32")], [("", "bytes32")]),
    _fn("resultFor", [("question_id", "bytes32")], [("", "bytes32")]),
    _fn(
        "claimWinnings",
        [
            ("question_id", "bytes32"),
            ("history_hashes", "bytes32[]"),
            ("addrs", "address[]"),
            ("bonds", "uint256[]"),
            ("answers", "bytes32[]"),
        ],
        mutability="nonpayable",
    ),
    _fn(
        "submitAnswerERC20",
        [
            ("question_id", "bytes32"),
            ("answer", "bytes32"),
            ("max_previous", "uint256"),
            ("tokens", "uint256"),
        ],
        mutability="nonpayable",
    ),
    {
        "type": "event",
        "name": "LogNewAnswer",
        "anonymous": False,
        "inputs": [
            {"name": "answer", "type": "bytes32", "indexed": False},
            {"name": "question_id", "type": "bytes32", "indexed": True},
            {"name": "history_hash", "type": "bytes32", "indexed": False},
            {"name": "user", "type": "address", "indexed": True},
            {"name": "bond", "type": "uint256", "indexed": False},
            {"name": "ts", "type": "uint256", "indexed": False},
            {"name": "is_commitment", "type": "bool", "indexed": False},
        ],
    },
]
