"""
Workplan API — FastAPI endpoints.

Exposes the planner for presentation layers:
- Plan building (build + publish through the plan store)
- Read-only views of the latest published plan
"""

from datetime import date, datetime
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from workplan.models.building import CheckIn
from workplan.models.config import PlannerConfig
from workplan.models.plan import DailyPlan, PlanSources, Worker
from workplan.orchestrator.pipeline import DailyPlanOrchestrator, PlanInputError
from workplan.plan_store.store import PlanStore
from workplan.settings import PlannerSettings, configure_logging


# --- Request/Response Models ---

class PlanRequest(BaseModel):
    day: date
    current_time: Optional[datetime] = None
    worker_name: str = ""
    check_in: Optional[CheckIn] = None
    sources: PlanSources = PlanSources()


class PlanResponse(BaseModel):
    generation: int
    published: bool
    plan: DailyPlan


# --- Application Factory ---

def create_app(
    orchestrator: Optional[DailyPlanOrchestrator] = None,
    store: Optional[PlanStore] = None,
    config: Optional[PlannerConfig] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Workplan API",
        description="Field worker daily plan synthesis",
        version="0.1.0",
    )

    settings = PlannerSettings()
    configure_logging(settings.log_level)

    planner = orchestrator or DailyPlanOrchestrator(config or settings.to_config())
    plans = store or PlanStore()

    app.state.orchestrator = planner
    app.state.plan_store = plans

    def _latest(worker_id: str) -> DailyPlan:
        plan = plans.latest(worker_id)
        if plan is None:
            raise HTTPException(404, "No plan published for worker")
        return plan

    # === PLANNING ===

    @app.post("/workers/{worker_id}/plan", response_model=dict)
    def build_plan(worker_id: str, req: PlanRequest):
        """Build a plan from the given snapshots and publish it."""
        worker = Worker(id=worker_id, name=req.worker_name, check_in=req.check_in)
        generation = plans.next_generation(worker_id)
        try:
            plan = planner.build_plan(worker, req.day, req.sources, req.current_time)
        except PlanInputError as e:
            raise HTTPException(422, str(e))
        published = plans.publish(worker_id, generation, plan)
        return PlanResponse(
            generation=generation, published=published, plan=plan,
        ).model_dump(mode="json")

    # === READ-ONLY VIEWS ===

    @app.get("/workers/{worker_id}/plan")
    def get_plan(worker_id: str):
        """Latest published plan."""
        return _latest(worker_id).model_dump(mode="json")

    @app.get("/workers/{worker_id}/weekly")
    def get_weekly_plan(worker_id: str):
        return _latest(worker_id).weekly_plan.model_dump(mode="json")

    @app.get("/workers/{worker_id}/current-building")
    def get_current_building(worker_id: str):
        building = _latest(worker_id).current_building
        return {"building": building.model_dump(mode="json") if building else None}

    @app.get("/workers/{worker_id}/upcoming")
    def get_upcoming(worker_id: str):
        plan = _latest(worker_id)
        return {
            "ordered": [s.model_dump(mode="json") for s in plan.ordered_upcoming],
            "deferred": [s.model_dump(mode="json") for s in plan.deferred_outdoor],
            "defer_outdoor_work": plan.defer_outdoor_work,
        }

    # === HEALTH ===

    @app.get("/health")
    def health():
        return {"status": "ok", "config": planner.config.model_dump(mode="json")}

    return app
