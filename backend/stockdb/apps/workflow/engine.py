from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from stockdb import errors
from stockdb.apps.events.broker import publish_change

from .registry import WORKFLOWS, allowed_transitions

logger = logging.getLogger(__name__)


def apply_transition(
    db: Session,
    *,
    organization_id: str,
    actor_user_id: Optional[str],
    entity_type: str,
    entity_id: str,
    from_state: str,
    to_state: str,
    before_obj: Any,
    after_obj: Any,
    on_apply: Optional[Callable[[], None]] = None,
) -> None:
    """
    Check an edge against the registry and run its guards.

    Raises ``InvalidTransitionError`` when the edge is not registered
    (including any move out of a terminal state) and ``ValidationError``
    when a guard reports missing requirements. ``on_apply`` performs the
    state change; the transition is only announced once it has returned.
    """
    workflow = WORKFLOWS.get(entity_type)
    if not workflow:
        raise errors.InvalidTransitionError(
            f"No workflow registered for {entity_type}.",
            detail=[{"field": "entity_type", "reason": f"No workflow registered for {entity_type}"}],
        )

    transitions = workflow.get("transitions", {})
    allowed = transitions.get(from_state, {})
    guards = allowed.get(to_state)

    if guards is None:
        logger.warning(
            "Transition rejected",
            extra={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "from_state": from_state,
                "to_state": to_state,
            },
        )
        raise errors.InvalidTransitionError(
            f"Cannot transition from {from_state} to {to_state}.",
            detail=[
                {
                    "field": "status",
                    "reason": f"Cannot transition from {from_state} to {to_state}",
                    "allowed": ", ".join(allowed_transitions(entity_type, from_state)),
                }
            ],
        )

    failures: List[Dict[str, str]] = []
    for guard in guards:
        failures.extend(
            guard(
                db,
                before_obj=before_obj,
                after_obj=after_obj,
                from_state=from_state,
                to_state=to_state,
            )
        )

    if failures:
        logger.warning(
            "Transition requirements not met",
            extra={"entity_type": entity_type, "entity_id": entity_id, "to_state": to_state},
        )
        raise errors.ValidationError(
            f"Cannot move {entity_type} {entity_id} to {to_state}.",
            code="missing_requirements",
            detail=failures,
        )

    if on_apply is not None:
        on_apply()

    logger.info(
        "Transition applied",
        extra={
            "entity_type": entity_type,
            "entity_id": entity_id,
            "from_state": from_state,
            "to_state": to_state,
            "actor_user_id": actor_user_id,
        },
    )
    publish_change(
        db,
        organization_id=organization_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action="transition",
        actor_user_id=actor_user_id,
        metadata={"from": from_state, "to": to_state, "workflow": entity_type},
    )
