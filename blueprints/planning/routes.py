from __future__ import annotations

import asyncio
from datetime import date
from io import BytesIO
from typing import Any, Dict, List

from flask import Blueprint, jsonify, request

from adapters.report.xlsx_writer import write_year
from domain.errors import MalformedInputError, RemoteStoreError
from domain.models import Agent, LeaveRequest
from domain.schedule import ScheduleGrid, total_worked_hours
from domain.week_key import parse_date
from rules import balances as balance_rules
from rules.leave import submit_leave_request
from services.db import get_service
from services.planning_service import confirm_all
from services.reconciliation import SaveReceipt

bp = Blueprint("planning", __name__)


def _payload() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise MalformedInputError("Expected a JSON object body")
    return payload


def _parse_year(value: Any) -> int:
    raw = str(value).strip()
    if not raw.isdigit():
        raise MalformedInputError(f"Invalid year: {value!r}")
    return int(raw)


def _year() -> int:
    return _parse_year(request.args.get("year") or date.today().year)


def _errors(errors: List[RemoteStoreError]) -> List[Dict[str, Any]]:
    return [{"week_key": error.week_key, "error": str(error)} for error in errors]


async def _settle(receipts: List[SaveReceipt]) -> Dict[str, Any]:
    errors = await confirm_all(receipts)
    return {"weeks": [receipt.week_key for receipt in receipts], "remote_errors": _errors(errors)}


async def _fresh(service, agent_id: str) -> None:
    # Mutations start from the remote state or not at all.
    error = await service.refresh(agent_id)
    if error is not None:
        raise error


@bp.app_errorhandler(MalformedInputError)
def malformed_input(exc: MalformedInputError):
    return jsonify({"error": str(exc)}), 400


@bp.app_errorhandler(RemoteStoreError)
def remote_unavailable(exc: RemoteStoreError):
    return jsonify({"error": str(exc), "week_key": exc.week_key}), 503


@bp.route("/api/agents/<agent_id>/weeks/<day>", methods=["GET"])
def get_week(agent_id: str, day: str):
    service = get_service()
    target = parse_date(day)

    async def handler() -> Dict[str, Any]:
        error = await service.refresh(agent_id)
        week_key, grid = service.week(agent_id, target)
        return {
            "week_key": week_key,
            "recorded": service.is_recorded(agent_id, target),
            "slots": grid.to_payload(),
            "worked_hours": total_worked_hours(grid),
            "remote_error": str(error) if error else None,
        }

    return jsonify(asyncio.run(handler()))


@bp.route("/api/agents/<agent_id>/weeks/<day>", methods=["PUT"])
def put_week(agent_id: str, day: str):
    service = get_service()
    target = parse_date(day)
    grid = ScheduleGrid.from_payload(_payload().get("slots", []))

    async def handler() -> Dict[str, Any]:
        return await _settle([service.save_week(agent_id, target, grid)])

    return jsonify(asyncio.run(handler()))


@bp.route("/api/agents/<agent_id>/weeks/<day>/slot", methods=["PATCH"])
def patch_slot(agent_id: str, day: str):
    service = get_service()
    target = parse_date(day)
    payload = _payload()

    async def handler() -> Dict[str, Any]:
        receipt = service.edit_slot(
            agent_id,
            target,
            str(payload.get("day", "")).lower(),
            str(payload.get("segment", "")).lower(),
            str(payload.get("status", "")).lower(),
            payload.get("start"),
            payload.get("end"),
        )
        return await _settle([receipt])

    return jsonify(asyncio.run(handler()))


@bp.route("/api/agents/<agent_id>/repeat", methods=["POST"])
def repeat_weekly(agent_id: str):
    service = get_service()
    payload = _payload()
    template = ScheduleGrid.from_payload(payload.get("slots", []))
    effective_from = parse_date(payload.get("effective_from") or date.today())
    target_year = _parse_year(payload.get("year") or effective_from.year)

    async def handler() -> Dict[str, Any]:
        return await _settle(service.repeat_weekly(agent_id, template, effective_from, target_year))

    return jsonify(asyncio.run(handler()))


@bp.route("/api/agents/<agent_id>/repeat", methods=["GET"])
def repeat_status(agent_id: str):
    service = get_service()
    year = _year()

    async def handler() -> Dict[str, Any]:
        error = await service.refresh(agent_id)
        return {
            "year": year,
            "repeated": service.is_repeated(agent_id, year),
            "remote_error": str(error) if error else None,
        }

    return jsonify(asyncio.run(handler()))


@bp.route("/api/agents/<agent_id>/leave", methods=["POST"])
def submit_leave(agent_id: str):
    service = get_service()
    record = {"agent_id": agent_id, **_payload()}
    leave_request = submit_leave_request(record, today=date.today(), config=service.config)
    return jsonify(leave_request.to_record()), 201


@bp.route("/api/agents/<agent_id>/leave/apply", methods=["POST"])
def apply_leave(agent_id: str):
    service = get_service()
    leave_request = LeaveRequest.from_record(_payload().get("request") or {})

    async def handler() -> Dict[str, Any]:
        await _fresh(service, agent_id)
        return await _settle(service.apply_leave(agent_id, leave_request))

    return jsonify(asyncio.run(handler()))


@bp.route("/api/agents/<agent_id>/leave/cancel", methods=["POST"])
def cancel_leave(agent_id: str):
    service = get_service()
    leave_request = LeaveRequest.from_record(_payload().get("request") or {})

    async def handler() -> Dict[str, Any]:
        await _fresh(service, agent_id)
        return await _settle(service.cancel_leave(agent_id, leave_request))

    return jsonify(asyncio.run(handler()))


@bp.route("/api/agents/<agent_id>/balances", methods=["POST"])
def agent_balances(agent_id: str):
    service = get_service()
    payload = _payload()
    agent = Agent.from_record(
        {**(payload.get("agent") or {}), "id": agent_id},
        default_weekly_hours=service.config.get("default_weekly_hours", 35),
    )
    requests = [LeaveRequest.from_record(record) for record in payload.get("requests", [])]

    async def handler() -> Dict[str, Any]:
        error = await service.refresh(agent_id)
        summary = service.balances(agent, requests)
        return {
            "agent_id": agent_id,
            "balances": {category: balance.as_dict() for category, balance in summary.items()},
            "days": balance_rules.day_totals(agent, requests),
            "remote_error": str(error) if error else None,
        }

    return jsonify(asyncio.run(handler()))


@bp.route("/api/agents/<agent_id>/export/xlsx")
def export_year(agent_id: str):
    service = get_service()
    year = _year()

    async def handler() -> None:
        await service.refresh(agent_id)

    asyncio.run(handler())
    stream = BytesIO()
    write_year(stream, agent_id, service.grids(agent_id), year)
    filename = f"planning_{agent_id}_{year}.xlsx"
    return (stream.getvalue(), 200, {
        "Content-Type": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "Content-Disposition": f"attachment; filename={filename}",
    })
