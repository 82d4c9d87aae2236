"""Servo control modules."""

from servo_server.control.servo_commands import DIRECTION_MAP, command_for, is_valid_direction

__all__ = ["DIRECTION_MAP", "command_for", "is_valid_direction"]
