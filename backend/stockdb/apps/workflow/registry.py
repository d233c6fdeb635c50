from __future__ import annotations

from .guards import guard_locations_active, guard_source_stock_available, guard_transfer_has_items

# entity_type -> from_state -> to_state -> guards. A missing edge is illegal;
# an empty mapping marks a terminal state.
WORKFLOWS = {
    "inventory_transfer": {
        "transitions": {
            "pending": {
                "in_transit": [guard_transfer_has_items, guard_locations_active],
                "cancelled": [],
            },
            "in_transit": {
                "completed": [guard_transfer_has_items, guard_locations_active, guard_source_stock_available],
                "cancelled": [],
            },
            "completed": {},
            "cancelled": {},
        }
    },
}


def allowed_transitions(entity_type: str, from_state: str) -> list[str]:
    workflow = WORKFLOWS.get(entity_type) or {}
    return sorted((workflow.get("transitions") or {}).get(from_state, {}))


def is_terminal(entity_type: str, state: str) -> bool:
    workflow = WORKFLOWS.get(entity_type) or {}
    transitions = workflow.get("transitions") or {}
    return state in transitions and not transitions[state]
