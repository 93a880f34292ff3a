"""FastAPI application for the Glocal Adaptation Engine.

Exposes open adaptation workspaces to a UI layer: workflow state, phase
completion, segment translation, manual edits, saving and audit export.

Usage (after installing fastapi and uvicorn):

    uvicorn glocal_adaptation.api.app:app --reload

Workspaces are opened on first use from the database named by
GLOCAL_DATABASE_URL, translating through GLOCAL_TRANSLATION_URL.
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse, PlainTextResponse

from ..config.config_manager import ConfigurationManager
from ..exceptions import PhaseOutOfOrder, TranslationUnavailable, WorkflowLocked
from ..translation.client import HttpTranslationService
from ..workspace import AdaptationWorkspace, WorkspaceConfig


WorkspaceOpener = Callable[[str], Awaitable[AdaptationWorkspace]]


async def _open_from_environment(project_id: str) -> AdaptationWorkspace:
    """Open a stored project with settings taken from the environment."""
    config_dir = os.getenv("GLOCAL_CONFIG_DIR")
    config_manager = ConfigurationManager(config_dir=config_dir)
    if config_dir:
        config_manager.load_from_directory(config_dir)
    config_manager.apply_environment()
    translator = HttpTranslationService.from_settings(config_manager.configuration.translation)
    return await AdaptationWorkspace.load(
        project_id,
        translator,
        config=WorkspaceConfig(database_url=os.getenv("GLOCAL_DATABASE_URL")),
        config_manager=config_manager,
    )


class WorkspaceRegistry:
    """Open workspaces by project id."""

    def __init__(self, opener: Optional[WorkspaceOpener] = None):
        self._opener = opener or _open_from_environment
        self._workspaces: Dict[str, AdaptationWorkspace] = {}

    def add(self, workspace: AdaptationWorkspace) -> None:
        self._workspaces[workspace.project.id] = workspace

    async def get(self, project_id: str) -> AdaptationWorkspace:
        workspace = self._workspaces.get(project_id)
        if workspace is None:
            try:
                workspace = await self._opener(project_id)
            except KeyError as exc:
                raise HTTPException(status_code=404, detail=f"Project not found: {project_id}") from exc
            self._workspaces[project_id] = workspace
        return workspace

    async def close_all(self) -> None:
        for workspace in list(self._workspaces.values()):
            await workspace.close()
        self._workspaces.clear()


def _workflow_payload(workspace: AdaptationWorkspace) -> Dict[str, Any]:
    state = workspace.project.workflow_state
    return {
        "project_id": workspace.project.id,
        "current_phase": state.current_phase,
        "phases_completed": sorted(state.phases_completed),
        "overall_progress": state.overall_progress,
        "phases": [view.to_dict() for view in workspace.describe_phases()],
        "closing_report": state.closing_report.to_export_dict() if state.closing_report else None,
    }


def _segment_payload(workspace: AdaptationWorkspace, segment_id: str) -> Dict[str, Any]:
    try:
        return workspace.get_segment(segment_id).to_dict()
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Segment not found: {segment_id}") from exc


def create_app(registry: Optional[WorkspaceRegistry] = None) -> FastAPI:
    """Build the API over ``registry`` (opens from the environment by default)."""
    workspaces = registry or WorkspaceRegistry()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await workspaces.close_all()

    app = FastAPI(title="Glocal Adaptation API", version="0.1.0", lifespan=lifespan)
    app.state.workspaces = workspaces

    @app.get("/api/projects/{project_id}/workflow")
    async def get_workflow(project_id: str) -> JSONResponse:
        """Current phase, completed phases, per-phase status and progress."""
        workspace = await app.state.workspaces.get(project_id)
        return JSONResponse(status_code=200, content=_workflow_payload(workspace))

    @app.post("/api/projects/{project_id}/phases/{phase_number}/complete")
    async def complete_phase(
        project_id: str,
        phase_number: int,
        result: Dict[str, Any] = Body(..., description="Phase result fields"),
    ) -> JSONResponse:
        workspace = await app.state.workspaces.get(project_id)
        try:
            transition = await workspace.complete_phase(phase_number, result)
        except (PhaseOutOfOrder, WorkflowLocked) as exc:
            raise HTTPException(status_code=409, detail=exc.to_dict()) from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

        payload = _workflow_payload(workspace)
        payload["transition"] = {
            "phase_number": transition.phase_number,
            "previous_phase": transition.previous_phase,
            "current_phase": transition.current_phase,
            "recompleted": transition.recompleted,
        }
        return JSONResponse(status_code=200, content=payload)

    @app.post("/api/projects/{project_id}/segments/{segment_id}/translate")
    async def translate_segment(project_id: str, segment_id: str) -> JSONResponse:
        workspace = await app.state.workspaces.get(project_id)
        _segment_payload(workspace, segment_id)
        try:
            result = await workspace.translate_segment(segment_id)
        except TranslationUnavailable as exc:
            raise HTTPException(status_code=503, detail=exc.user_message) from exc
        except WorkflowLocked as exc:
            raise HTTPException(status_code=409, detail=exc.to_dict()) from exc

        return JSONResponse(
            status_code=200,
            content={
                "segment": _segment_payload(workspace, segment_id),
                "result": result.to_dict(),
            },
        )

    @app.post("/api/projects/{project_id}/translate-all")
    async def translate_all(project_id: str) -> JSONResponse:
        """Translate every untranslated segment; failures are skipped."""
        workspace = await app.state.workspaces.get(project_id)
        try:
            results = await workspace.translate_all()
        except WorkflowLocked as exc:
            raise HTTPException(status_code=409, detail=exc.to_dict()) from exc

        return JSONResponse(
            status_code=200,
            content={
                "translated": sorted(results),
                "failed": sorted(
                    s.id for s in workspace.segments if not s.is_translated
                ),
                "results": {sid: r.to_dict() for sid, r in results.items()},
            },
        )

    @app.put("/api/projects/{project_id}/segments/{segment_id}")
    async def edit_segment(
        project_id: str,
        segment_id: str,
        payload: Dict[str, Any] = Body(...),
    ) -> JSONResponse:
        """Store a manual translation edit."""
        workspace = await app.state.workspaces.get(project_id)
        _segment_payload(workspace, segment_id)
        translated_text = payload.get("translated_text")
        if not isinstance(translated_text, str) or not translated_text.strip():
            raise HTTPException(status_code=422, detail="translated_text must be a non-empty string")
        try:
            segment = await workspace.edit_translation(
                segment_id, translated_text, user_id=payload.get("user_id")
            )
        except WorkflowLocked as exc:
            raise HTTPException(status_code=409, detail=exc.to_dict()) from exc
        return JSONResponse(status_code=200, content=segment.to_dict())

    @app.post("/api/projects/{project_id}/save")
    async def force_save(project_id: str) -> JSONResponse:
        """Save immediately, bypassing the debounce and change detection."""
        workspace = await app.state.workspaces.get(project_id)
        outcome = await workspace.force_save()
        content = {
            "saved": outcome.saved,
            "reason": outcome.reason,
            "attempts": outcome.attempts,
            "error": outcome.error.user_message if outcome.error else None,
            "promotion_failures": [f.to_dict() for f in outcome.promotion_failures],
        }
        return JSONResponse(status_code=200 if outcome.saved else 503, content=content)

    @app.get("/api/projects/{project_id}/autosave")
    async def autosave_status(project_id: str) -> JSONResponse:
        workspace = await app.state.workspaces.get(project_id)
        content = workspace.autosave_status.to_dict()
        content["state"] = workspace.autosave.state.value
        return JSONResponse(status_code=200, content=content)

    @app.get("/api/projects/{project_id}/audit")
    async def export_audit(
        project_id: str,
        format: str = Query("json", pattern="^(json|csv)$"),
    ):
        workspace = await app.state.workspaces.get(project_id)
        try:
            exported = workspace.export_audit_log(format=format)
        except RuntimeError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        media_type = "text/csv" if format == "csv" else "application/json"
        return PlainTextResponse(content=exported, media_type=media_type)

    return app


app = create_app()
