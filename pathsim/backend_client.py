from __future__ import annotations

"""
File: pathsim/backend_client.py
Purpose: HTTP client for the warehouse planning backend.
Key responsibilities:
- Fetch the environment, solve and scenario of a finished solve.
- Normalize them into engine inputs.
"""

import logging
from typing import Any

import httpx

from pathsim.schemas import Environment, ScenarioParameters, SolveResult

logger = logging.getLogger("path-sim.backend")


def _headers(token: str) -> dict[str, str]:
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


async def _get_json(client: httpx.AsyncClient, path: str) -> Any:
    resp = await client.get(path)
    resp.raise_for_status()
    return resp.json()


async def fetch_environment(client: httpx.AsyncClient, environment_id: int) -> Environment:
    """GET /environments/{id}."""
    data = await _get_json(client, f"/environments/{environment_id}")
    return Environment.model_validate(data)


async def fetch_scenario_parameters(client: httpx.AsyncClient, scenario_id: int) -> ScenarioParameters:
    """GET /scenarios/{id} and keep only the battery parameters."""
    data = await _get_json(client, f"/scenarios/{scenario_id}")
    return ScenarioParameters.model_validate(data.get("parameters") or {})


def solve_result_from_payload(solve: dict[str, Any]) -> SolveResult:
    """Extract the result block of a solve; older records store it under "result"."""
    status = solve.get("status")
    if status is not None and status != "completed":
        raise ValueError(f"solve {solve.get('id')} is {status}, not completed")
    raw = solve.get("results") or solve.get("result")
    if not isinstance(raw, dict):
        raise ValueError(f"solve {solve.get('id')} has no result")
    return SolveResult.from_payload(raw)


async def load_solve_inputs(
    api_url: str,
    solve_id: int,
    token: str = "",
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[Environment, SolveResult, ScenarioParameters]:
    """Fetch everything needed to simulate a completed solve."""
    async with httpx.AsyncClient(
        base_url=api_url,
        headers=_headers(token),
        timeout=10.0,
        transport=transport,
    ) as client:
        solve = await _get_json(client, f"/solves/{solve_id}")
        result = solve_result_from_payload(solve)
        environment_id = solve.get("environment_id")
        if environment_id is None:
            raise ValueError(f"solve {solve_id} has no environment_id")
        environment = await fetch_environment(client, int(environment_id))
        parameters = ScenarioParameters()
        scenario_id = solve.get("scenario_id")
        if scenario_id is not None:
            parameters = await fetch_scenario_parameters(client, int(scenario_id))
    logger.info(
        "loaded solve_id=%s environment_id=%s robots=%d",
        solve_id,
        solve.get("environment_id"),
        len(result.robots),
    )
    return environment, result, parameters
