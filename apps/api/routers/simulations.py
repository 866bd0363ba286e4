"""
Simulations API Router

Start a simulation, exchange messages with the simulated client, and
complete it for scoring.
"""
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from core.database import get_db
from core.auth import get_current_user
from core.exceptions import DomainError, to_api_exception
from models import User
from schemas import (
    MessageCreate,
    MessageExchangeResponse,
    MessageResponse,
    SimulationCompleteResponse,
    SimulationResponse,
    SimulationStart,
)
from services import simulations as simulation_service
from services.llm_client import LLMClient, get_llm_client
from tasks.coaching_tasks import run_post_completion_task

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/simulations", tags=["simulations"])


def enqueue_post_completion(user_id: int, simulation_id: int) -> None:
    """Fire-and-forget; a broker outage must not fail the completion request."""
    try:
        run_post_completion_task.delay(user_id, simulation_id)
    except Exception as e:
        logger.error(
            f"Failed to enqueue post-completion for simulation {simulation_id}: {e}",
            extra={"extra_fields": {"user_id": user_id}},
        )


@router.get("", response_model=List[SimulationResponse])
def my_simulations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    status: Optional[str] = Query(None, description="in_progress | completed | abandoned"),
    limit: int = Query(50, ge=1, le=200),
):
    return simulation_service.list_user_simulations(db, current_user.id, limit=limit, status=status)


@router.post("", response_model=SimulationResponse, status_code=201)
def start_simulation(
    payload: SimulationStart,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return simulation_service.start_simulation(
            db, current_user, payload.scenario_id, is_practice_mode=payload.is_practice_mode
        )
    except DomainError as e:
        raise to_api_exception(e)


@router.get("/{simulation_id}", response_model=SimulationResponse)
def get_simulation(
    simulation_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return simulation_service.get_simulation(db, current_user, simulation_id)
    except DomainError as e:
        raise to_api_exception(e)


@router.get("/{simulation_id}/messages", response_model=List[MessageResponse])
def get_messages(
    simulation_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        simulation = simulation_service.get_simulation(db, current_user, simulation_id)
    except DomainError as e:
        raise to_api_exception(e)
    return simulation_service.get_messages(db, simulation.id)


@router.post("/{simulation_id}/messages", response_model=MessageExchangeResponse, status_code=201)
def send_message(
    simulation_id: int,
    payload: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    try:
        agent_message, client_message = simulation_service.send_message(
            db, current_user, simulation_id, payload.content, llm=llm
        )
    except DomainError as e:
        raise to_api_exception(e)
    return {"agent_message": agent_message, "client_message": client_message}


@router.post("/{simulation_id}/complete", response_model=SimulationCompleteResponse)
def complete_simulation(
    simulation_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    try:
        result = simulation_service.complete_simulation(db, current_user, simulation_id, llm=llm)
    except DomainError as e:
        raise to_api_exception(e)

    if not result["is_practice_mode"]:
        enqueue_post_completion(current_user.id, simulation_id)
    return result


@router.post("/{simulation_id}/abandon", response_model=SimulationResponse)
def abandon_simulation(
    simulation_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return simulation_service.abandon_simulation(db, current_user, simulation_id)
    except DomainError as e:
        raise to_api_exception(e)
