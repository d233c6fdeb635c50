from .engine import apply_transition
from .registry import WORKFLOWS, allowed_transitions, is_terminal

__all__ = ["WORKFLOWS", "allowed_transitions", "apply_transition", "is_terminal"]
