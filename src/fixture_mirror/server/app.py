"""
FastAPI application for the Fixture Mirror server.

Serves fixture snapshots of tracked repositories, triggers their refresh,
and turns test suggestions into GitHub pull requests.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from ..config import ConfigManager, MirrorConfig
from ..github import (
    Committer,
    GithubError,
    MissingInputError,
    SuggestionsService,
    TestSuggestion,
)
from ..mirror import (
    MirrorError,
    NotFoundError,
    RepositoryDescriptor,
    RepositoryRegistry,
    SyncOrchestrator,
)

logger = logging.getLogger(__name__)

REPOSITORY_PATH = "/api/repository/{provider}/{owner}/{repo}"


class SuggestionRequest(BaseModel):
    """Body of a pull request submission."""

    title: str = Field(default="", description="Pull request title")
    description: str = Field(default="", description="Pull request body")
    state: str = Field(default="", description="Content of the suggested test")
    committer: Optional[Committer] = None


def get_orchestrator(request: Request) -> SyncOrchestrator:
    return request.app.state.orchestrator


def get_suggestions_service(request: Request) -> SuggestionsService:
    return request.app.state.suggestions


def get_tracked_repository(
    provider: str,
    owner: str,
    repo: str,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> RepositoryDescriptor:
    """Resolve the repository of the request path, 404 when untracked."""
    try:
        return orchestrator.lookup(provider, owner, repo)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"provider": provider, "owner": owner, "name": repo},
        )


router = APIRouter()


@router.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@router.get("/api/repositories")
async def list_repositories(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> List[Dict[str, Any]]:
    if orchestrator.registry is None:
        return []
    return [
        descriptor.model_dump()
        for descriptor in orchestrator.registry.list_repositories()
    ]


@router.get(REPOSITORY_PATH)
async def repository_identity(provider: str, owner: str, repo: str) -> Dict[str, str]:
    return {"owner": owner, "repo": repo}


@router.get(REPOSITORY_PATH + "/tests")
async def repository_tests(
    descriptor: RepositoryDescriptor = Depends(get_tracked_repository),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Stream the current fixture snapshot of a repository."""
    try:
        stream = await orchestrator.read_snapshot(descriptor)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.to_dict())
    except MirrorError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.to_dict()
        )
    return StreamingResponse(stream, media_type="application/json")


@router.get(REPOSITORY_PATH + "/refresh")
async def repository_refresh(
    descriptor: RepositoryDescriptor = Depends(get_tracked_repository),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Synchronize a repository and republish its snapshot."""
    try:
        result = await orchestrator.refresh(descriptor)
    except MirrorError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.to_dict()
        )
    return result.to_dict()


@router.post("/api/suggestions")
async def create_suggestion(
    body: SuggestionRequest,
    suggestions: SuggestionsService = Depends(get_suggestions_service),
) -> Dict[str, Any]:
    """Open a pull request adding a suggested test."""
    suggestion = TestSuggestion(
        title=body.title, description=body.description, state=body.state
    )
    try:
        return await suggestions.create_pull_request(suggestion, body.committer)
    except MissingInputError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Missing input"},
        )
    except GithubError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.to_dict()
        )


def create_app(
    config: Optional[MirrorConfig] = None,
    registry: Optional[RepositoryRegistry] = None,
    orchestrator: Optional[SyncOrchestrator] = None,
    suggestions: Optional[SuggestionsService] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Every collaborator can be injected; missing ones are built from the
    configuration (loaded through ConfigManager when not given).
    """
    if config is None:
        config = ConfigManager().load()
    if orchestrator is None:
        if registry is None:
            registry = RepositoryRegistry.from_file(config.resolved_registry_path)
        orchestrator = SyncOrchestrator.from_config(config, registry=registry)
    if suggestions is None:
        suggestions = SuggestionsService(config.github)

    app = FastAPI(
        title="Fixture Mirror",
        description="Local mirrors of remote test fixtures",
    )
    app.state.config = config
    app.state.orchestrator = orchestrator
    app.state.suggestions = suggestions

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept"],
    )
    app.include_router(router)

    logger.info(f"Fixture Mirror app created (mirror root: {config.mirror_root})")
    return app
