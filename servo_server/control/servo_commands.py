"""Servo direction commands.

Translates the abstract directions the frontend sends into the
single-character commands the microcontroller firmware understands.
"""

from typing import Optional

# Mapping from abstract directions to protocol commands
DIRECTION_MAP = {
    'fullleft': 'F',
    'left': 'L',
    'right': 'R',
    'fullright': 'G',
}


def is_valid_direction(direction: object) -> bool:
    """Validate a direction payload."""
    if not isinstance(direction, str):
        return False
    return direction in DIRECTION_MAP


def command_for(direction: object) -> Optional[str]:
    """Get the protocol command for a direction.

    Args:
        direction: The direction name from the request body.

    Returns:
        The single-character command, or None for unknown directions.
    """
    if not is_valid_direction(direction):
        return None
    return DIRECTION_MAP[direction]
