"""Sibling row layout for children attached under a parent node."""

from typing import List, Sequence

from .graph_model import Node, Position

ROOT_POSITION = Position(x=400.0, y=50.0)
DEFAULT_SPACING = 200.0
ROW_OFFSET = 150.0


def layout_children(
    parent: Node,
    existing_children: Sequence[Node],
    new_count: int,
    spacing: float = DEFAULT_SPACING,
) -> List[Position]:
    """Place existing and new children on one evenly spaced row centred under ``parent``.

    Returns ``len(existing_children) + new_count`` positions: existing children
    first, in the order given, keeping their own ``y``; new children take the
    row ``parent.y + ROW_OFFSET``.
    """
    if new_count < 0:
        raise ValueError("new_count must be non-negative")

    total = len(existing_children) + new_count
    start_x = parent.position.x - (total - 1) * spacing / 2
    row_y = parent.position.y + ROW_OFFSET

    positions: List[Position] = []
    for index in range(total):
        x = start_x + index * spacing
        if index < len(existing_children):
            positions.append(Position(x=x, y=existing_children[index].position.y))
        else:
            positions.append(Position(x=x, y=row_y))
    return positions
