"""
Vesting API Blueprint

Read-only queries over the schedule registry and allocation counters, plus the
owner and beneficiary lifecycle operations (create, release, revoke, start
treasury fund). The caller is identified by the ``X-Caller`` header.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Tuple

from flask import Blueprint, request
from pydantic import BaseModel, ValidationError as PydanticValidationError

from rowa.core.api_blueprints.base import (
    commit,
    error_response,
    get_caller,
    get_manager,
    success_response,
    vesting_error_response,
)
from rowa.core.input_validation_schemas import CreateVestingInput, ReleaseInput
from rowa.core.vesting_exceptions import ScheduleRevokedError, VestingError
from rowa.vesting.categories import VestingCategory
from rowa.vesting.schedule import VestingSchedule

logger = logging.getLogger(__name__)

vesting_bp = Blueprint("vesting", __name__, url_prefix="/vesting")


def _schedule_payload(schedule: VestingSchedule) -> Dict[str, Any]:
    manager = get_manager()
    payload = schedule.to_dict()
    payload["vested_amount"] = manager.vested_amount(schedule.schedule_id)
    try:
        payload["releasable_amount"] = manager.releasable_amount(schedule.schedule_id)
    except ScheduleRevokedError:
        payload["releasable_amount"] = None
    return payload


def _parse_body(model: type[BaseModel]) -> BaseModel:
    return model.model_validate(request.get_json(silent=True) or {})


@vesting_bp.errorhandler(VestingError)
def handle_vesting_error(exc: VestingError) -> Tuple[Any, int]:
    return vesting_error_response(exc)


@vesting_bp.errorhandler(PydanticValidationError)
def handle_invalid_payload(exc: PydanticValidationError) -> Tuple[Any, int]:
    return error_response(
        "Invalid request payload",
        status=400,
        code="invalid_payload",
        context={"errors": exc.errors(include_url=False, include_context=False)},
    )


@vesting_bp.route("/schedules/<schedule_id>", methods=["GET"])
def get_schedule(schedule_id: str) -> Tuple[Any, int]:
    """Get a schedule with its current vested and releasable amounts."""
    schedule = get_manager().get_schedule(schedule_id)
    return success_response({"schedule": _schedule_payload(schedule)})


@vesting_bp.route("/schedules/<schedule_id>/releasable", methods=["GET"])
def get_releasable(schedule_id: str) -> Tuple[Any, int]:
    releasable = get_manager().releasable_amount(schedule_id)
    return success_response({"schedule_id": schedule_id, "releasable_amount": releasable})


@vesting_bp.route("/beneficiaries/<beneficiary>/count", methods=["GET"])
def get_beneficiary_count(beneficiary: str) -> Tuple[Any, int]:
    manager = get_manager()
    return success_response(
        {
            "beneficiary": beneficiary,
            "count": manager.get_schedules_count_by_beneficiary(beneficiary),
            "next_schedule_id": manager.compute_next_schedule_id_for_holder(beneficiary),
        }
    )


@vesting_bp.route("/beneficiaries/<beneficiary>/schedules/<int:index>", methods=["GET"])
def get_schedule_at_index(beneficiary: str, index: int) -> Tuple[Any, int]:
    schedule = get_manager().get_schedule_by_address_and_index(beneficiary, index)
    return success_response({"index": index, "schedule": _schedule_payload(schedule)})


@vesting_bp.route("/totals", methods=["GET"])
def get_totals() -> Tuple[Any, int]:
    manager = get_manager()
    return success_response(
        {
            "schedules_count": manager.get_schedules_count(),
            "total_committed": manager.get_schedules_total_amount(),
            "outstanding": manager.get_outstanding_amount(),
            "withdrawable": manager.get_withdrawable_amount(),
        }
    )


@vesting_bp.route("/categories", methods=["GET"])
def get_categories() -> Tuple[Any, int]:
    return success_response({"categories": get_manager().category_summary()})


@vesting_bp.route("/token", methods=["GET"])
def get_token() -> Tuple[Any, int]:
    manager = get_manager()
    return success_response(
        {
            "token_address": manager.get_token_address(),
            "vesting_pool": manager.vesting_pool,
            "paused": manager.ledger.is_paused(),
        }
    )


@vesting_bp.route("/schedules", methods=["POST"])
def create_schedule() -> Tuple[Any, int]:
    """Create a schedule in a sale, team, advisor or partnerships category."""
    data = _parse_body(CreateVestingInput)
    try:
        category = VestingCategory.parse(data.category)
    except ValueError as exc:
        return error_response(str(exc), status=400, code="invalid_category")
    schedule_id = get_manager().create_schedule(
        get_caller(), category, data.beneficiary, data.amount, data.revocable
    )
    commit()
    return success_response({"schedule_id": schedule_id}, status=201)


@vesting_bp.route("/schedules/<schedule_id>/release", methods=["POST"])
def release(schedule_id: str) -> Tuple[Any, int]:
    """Release an amount, or everything releasable when no amount is given."""
    data = _parse_body(ReleaseInput)
    manager = get_manager()
    caller = get_caller()
    if data.amount is None:
        released = manager.release_all(schedule_id, caller)
    else:
        manager.release(schedule_id, data.amount, caller)
        released = data.amount
    commit()
    schedule = manager.get_schedule(schedule_id)
    return success_response(
        {
            "schedule_id": schedule_id,
            "released": released,
            "released_amount": schedule.released_amount,
        }
    )


@vesting_bp.route("/schedules/<schedule_id>/revoke", methods=["POST"])
def revoke(schedule_id: str) -> Tuple[Any, int]:
    unvested = get_manager().revoke(schedule_id, get_caller())
    commit()
    return success_response({"schedule_id": schedule_id, "returned_to_allocation": unvested})


@vesting_bp.route("/funds/<category>/start", methods=["POST"])
def start_fund(category: str) -> Tuple[Any, int]:
    try:
        parsed = VestingCategory.parse(category)
    except ValueError as exc:
        return error_response(str(exc), status=400, code="invalid_category")
    schedule_id = get_manager().start_fund(get_caller(), parsed)
    commit()
    return success_response({"category": parsed.value, "schedule_id": schedule_id}, status=201)
