"""
Deterministic snake-draft ordering.

Rounds come in pairs. Round pair k (0-based) starts with the player at rotation
offset k mod P: round 2k+1 runs offset, offset+1, ..., offset+P-1 (mod P) and
round 2k+2 is the exact reverse of that round. Over any P consecutive round
pairs every player picks first exactly once and last exactly once.

Input order is the draft-position order (position 1 first). Same input list
yields the same sequence.
"""
from __future__ import annotations

from typing import Any


def round_pair_offset(round_number: int, player_count: int) -> int:
    """Rotation offset of the pair containing round_number (1-based)."""
    if round_number < 1:
        raise ValueError("round_number must be >= 1")
    if player_count < 1:
        raise ValueError("player_count must be >= 1")
    return ((round_number - 1) // 2) % player_count


def snake_round_order(player_ids: list[str], round_number: int) -> list[str]:
    """Pick order for one round."""
    n = len(player_ids)
    if n == 0:
        return []
    offset = round_pair_offset(round_number, n)
    forward = [player_ids[(offset + i) % n] for i in range(n)]
    if round_number % 2 == 0:
        return list(reversed(forward))
    return forward


def snake_pick_sequence(player_ids: list[str], rounds: int) -> list[tuple[int, int, str]]:
    """
    Full pick sequence: (round_number, pick_in_round, player_id), 1-based rounds and
    0-based pick index.
    """
    seq: list[tuple[int, int, str]] = []
    for r in range(1, rounds + 1):
        for i, pid in enumerate(snake_round_order(player_ids, r)):
            seq.append((r, i, pid))
    return seq


def assign_draft_positions(ordered_player_ids: list[str]) -> dict[str, int]:
    """draft_position := 1-based index in the ordered sequence."""
    return {pid: i + 1 for i, pid in enumerate(ordered_player_ids)}


def generate_draft_board(player_ids: list[str], rounds: int) -> list[dict[str, Any]]:
    """
    Return list of picks: { "round": int, "pick": int, "overall": int, "player_id": str }.
    pick and overall are 1-based.
    """
    return [
        {"round": r, "pick": i + 1, "overall": n + 1, "player_id": pid}
        for n, (r, i, pid) in enumerate(snake_pick_sequence(player_ids, rounds))
    ]
