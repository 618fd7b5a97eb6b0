"""FastAPI entrypoint and HTTP routes."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.ext.asyncio import AsyncSession

from wardrobe_share.api import schemas
from wardrobe_share.api.auth import PrincipalDependency
from wardrobe_share.config.settings import get_settings
from wardrobe_share.monitoring.logging import configure_logging
from wardrobe_share.services import commands
from wardrobe_share.services.container import Services, build_services
from wardrobe_share.services.errors import WardrobeShareError
from wardrobe_share.services.principal import Principal

ERROR_STATUS: dict[str, int] = {
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "internal_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _services(request: Request) -> Services:
    return request.app.state.services


async def _session(request: Request) -> AsyncIterator[AsyncSession]:
    async with _services(request).session_factory() as session:
        yield session


ServicesDependency = Depends(_services)
SessionDependency = Depends(_session)


async def _run(request: Request, principal: Principal, command: commands.Command) -> Any:
    """Execute a command and raise the matching HTTP error on failure."""

    handler: commands.CommandHandler = request.app.state.handler
    result = await handler.execute(principal, command)
    if not result.ok:
        raise HTTPException(
            status_code=ERROR_STATUS.get(result.error or "", status.HTTP_500_INTERNAL_SERVER_ERROR),
            detail={"error": result.error, "message": result.message},
        )
    return result.value


def create_app(services: Services | None = None) -> FastAPI:
    """Initialise the FastAPI application.

    When ``services`` is omitted they are built from settings and the tables
    are created on startup.
    """

    settings = get_settings()
    configure_logging()
    owns_database = services is None
    if services is None:
        from wardrobe_share.db.session import AsyncSessionFactory

        services = build_services(settings, AsyncSessionFactory)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if owns_database:
            from wardrobe_share.db.session import init_db

            await init_db()
        yield
        if owns_database:
            await services.close()

    app = FastAPI(
        title="Wardrobe Share API",
        version="0.1.0",
        docs_url="/docs" if settings.environment != "prod" else None,
        redoc_url="/redoc" if settings.environment != "prod" else None,
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.handler = commands.CommandHandler(services)

    @app.exception_handler(WardrobeShareError)
    async def domain_error_handler(_: Request, exc: WardrobeShareError) -> JSONResponse:
        return JSONResponse(
            status_code=ERROR_STATUS.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
            content={"detail": {"error": exc.code, "message": exc.message}},
        )

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Simple health endpoint used for readiness probes."""

        return {"status": "ok"}

    @app.get("/metrics", tags=["system"], include_in_schema=False)
    async def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Access grants

    @app.post(
        "/shares/invite",
        tags=["shares"],
        response_model=schemas.GrantOut,
        status_code=status.HTTP_201_CREATED,
    )
    async def create_invite(
        body: schemas.InviteRequest,
        request: Request,
        principal: Principal = PrincipalDependency,
    ) -> Any:
        return await _run(request, principal, commands.CreateInvite(email=body.email))

    @app.post("/shares/accept", tags=["shares"], response_model=schemas.GrantOut)
    async def accept_invite(
        body: schemas.AcceptInviteRequest,
        request: Request,
        principal: Principal = PrincipalDependency,
    ) -> Any:
        return await _run(request, principal, commands.AcceptInvite(code=body.code))

    @app.get("/shares", tags=["shares"], response_model=schemas.SharesOut)
    async def list_shares(
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> Any:
        return await services.ledger.list_shares(session, principal_id=principal.id)

    @app.post("/shares/{grant_id}/revoke", tags=["shares"], response_model=schemas.GrantOut)
    async def revoke_grant(
        grant_id: str,
        request: Request,
        principal: Principal = PrincipalDependency,
    ) -> Any:
        return await _run(request, principal, commands.RevokeGrant(grant_id=grant_id))

    @app.get("/wardrobes/{owner_id}/garments", tags=["shares"], response_model=list[schemas.GarmentOut])
    async def wardrobe_for_styling(
        owner_id: str,
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> Any:
        return await services.suggestions.wardrobe_for_styling(
            session,
            principal_id=principal.id,
            owner_id=owner_id,
        )

    # Collections

    @app.post(
        "/collections",
        tags=["collections"],
        response_model=schemas.CollectionOut,
        status_code=status.HTTP_201_CREATED,
    )
    async def save_collection(
        body: schemas.CollectionRequest,
        request: Request,
        principal: Principal = PrincipalDependency,
    ) -> Any:
        command = commands.SaveCollection(
            name=body.name,
            garment_ids=tuple(body.garment_ids),
            permission_level=body.permission_level,
            description=body.description,
            id=body.id,
        )
        return await _run(request, principal, command)

    @app.get("/collections", tags=["collections"], response_model=list[schemas.CollectionOut])
    async def list_collections(
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> Any:
        return await services.collections.list_mine(session, owner_id=principal.id)

    @app.get("/collections/invited", tags=["collections"], response_model=list[schemas.CollectionOut])
    async def list_invited_collections(
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> Any:
        return await services.collections.list_invited(session, email=principal.email)

    @app.get(
        "/collections/shared/{token}",
        tags=["collections"],
        response_model=schemas.SharedCollectionOut,
    )
    async def shared_collection(
        token: str,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> Any:
        return await services.collections.resolve_by_token(session, token=token)

    @app.get("/collections/{collection_id}", tags=["collections"], response_model=schemas.CollectionOut)
    async def get_collection(
        collection_id: str,
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> Any:
        return await services.collections.get(
            session,
            owner_id=principal.id,
            collection_id=collection_id,
        )

    @app.delete(
        "/collections/{collection_id}",
        tags=["collections"],
        status_code=status.HTTP_204_NO_CONTENT,
    )
    async def delete_collection(
        collection_id: str,
        request: Request,
        principal: Principal = PrincipalDependency,
    ) -> Response:
        await _run(request, principal, commands.DeleteCollection(collection_id=collection_id))
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post(
        "/collections/{collection_id}/invite",
        tags=["collections"],
        response_model=schemas.CollectionInviteOut,
    )
    async def invite_to_collection(
        collection_id: str,
        body: schemas.CollectionInviteRequest,
        request: Request,
        principal: Principal = PrincipalDependency,
    ) -> Any:
        command = commands.InviteToCollection(collection_id=collection_id, emails=tuple(body.emails))
        return await _run(request, principal, command)

    # Suggestions

    @app.post(
        "/suggestions",
        tags=["suggestions"],
        response_model=schemas.SuggestionOut,
        status_code=status.HTTP_201_CREATED,
    )
    async def create_suggestion(
        body: schemas.SuggestionRequest,
        request: Request,
        principal: Principal = PrincipalDependency,
    ) -> Any:
        command = commands.CreateSuggestion(
            owner_id=body.owner_id,
            garment_ids=tuple(body.garment_ids),
            title=body.title,
            description=body.description,
            occasion=body.occasion,
            tags=tuple(body.tags),
            collection_id=body.collection_id,
        )
        return await _run(request, principal, command)

    @app.post("/suggestions/system", tags=["suggestions"], response_model=schemas.SuggestionOut | None)
    async def create_system_suggestion(
        body: schemas.RecommendRequest,
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> Any:
        return await services.suggestions.create_system_suggestion(
            session,
            principal=principal,
            owner_id=body.owner_id,
            occasion=body.occasion,
        )

    @app.get("/suggestions/received", tags=["suggestions"], response_model=list[schemas.SuggestionOut])
    async def received_suggestions(
        status_filter: str | None = Query(default=None, alias="status"),
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> Any:
        return await services.suggestions.list_received(
            session,
            owner_id=principal.id,
            status=status_filter,
        )

    @app.get("/suggestions/created", tags=["suggestions"], response_model=list[schemas.SuggestionOut])
    async def created_suggestions(
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> Any:
        return await services.suggestions.list_created(session, stylist_id=principal.id)

    @app.get("/suggestions/stats", tags=["suggestions"], response_model=schemas.StatsOut)
    async def suggestion_stats(
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> Any:
        return await services.suggestions.stats(session, principal_id=principal.id)

    @app.get("/suggestions/{suggestion_id}", tags=["suggestions"], response_model=schemas.SuggestionOut)
    async def get_suggestion(
        suggestion_id: str,
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> Any:
        return await services.suggestions.get(
            session,
            principal_id=principal.id,
            suggestion_id=suggestion_id,
        )

    @app.post(
        "/suggestions/{suggestion_id}/transition",
        tags=["suggestions"],
        response_model=schemas.SuggestionOut,
    )
    async def transition_suggestion(
        suggestion_id: str,
        body: schemas.TransitionRequest,
        request: Request,
        principal: Principal = PrincipalDependency,
    ) -> Any:
        try:
            action = commands.TransitionAction(body.action)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"error": "validation_error", "message": f"Unknown transition: {body.action!r}"},
            ) from exc
        command = commands.Transition(suggestion_id=suggestion_id, action=action, feedback=body.feedback)
        return await _run(request, principal, command)

    @app.post(
        "/suggestions/{suggestion_id}/modify",
        tags=["suggestions"],
        response_model=schemas.SuggestionOut,
    )
    async def modify_suggestion(
        suggestion_id: str,
        body: schemas.ModifyRequest,
        request: Request,
        principal: Principal = PrincipalDependency,
    ) -> Any:
        command = commands.ModifySuggestion(
            suggestion_id=suggestion_id,
            add_ids=tuple(body.add_ids),
            remove_ids=tuple(body.remove_ids),
        )
        return await _run(request, principal, command)

    @app.delete(
        "/suggestions/{suggestion_id}",
        tags=["suggestions"],
        status_code=status.HTTP_204_NO_CONTENT,
    )
    async def delete_suggestion(
        suggestion_id: str,
        request: Request,
        principal: Principal = PrincipalDependency,
    ) -> Response:
        await _run(request, principal, commands.DeleteSuggestion(suggestion_id=suggestion_id))
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post(
        "/suggestions/{suggestion_id}/comments",
        tags=["suggestions"],
        response_model=schemas.CommentOut,
        status_code=status.HTTP_201_CREATED,
    )
    async def add_comment(
        suggestion_id: str,
        body: schemas.CommentRequest,
        request: Request,
        principal: Principal = PrincipalDependency,
    ) -> Any:
        command = commands.AddComment(suggestion_id=suggestion_id, message=body.message)
        return await _run(request, principal, command)

    @app.get(
        "/suggestions/{suggestion_id}/comments",
        tags=["suggestions"],
        response_model=list[schemas.CommentOut],
    )
    async def list_comments(
        suggestion_id: str,
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> Any:
        return await services.suggestions.list_comments(
            session,
            principal_id=principal.id,
            suggestion_id=suggestion_id,
        )

    # Planner and recommendations

    @app.get("/planner", tags=["planner"], response_model=list[schemas.SuggestionOut])
    async def planned_outfits(
        start: datetime = Query(alias="from"),
        end: datetime = Query(alias="to"),
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> Any:
        return await services.planner.list(session, owner_id=principal.id, start=start, end=end)

    @app.post(
        "/planner",
        tags=["planner"],
        response_model=schemas.SuggestionOut,
        status_code=status.HTTP_201_CREATED,
    )
    async def plan_outfit(
        body: schemas.PlanRequest,
        request: Request,
        principal: Principal = PrincipalDependency,
    ) -> Any:
        command = commands.PlanOutfit(
            garment_ids=tuple(body.garment_ids),
            planned_at=body.planned_at,
            title=body.title,
            occasion=body.occasion,
        )
        return await _run(request, principal, command)

    @app.post("/recommendations", tags=["planner"], response_model=schemas.RecommendationOut)
    async def recommend(
        body: schemas.RecommendRequest,
        request: Request,
        principal: Principal = PrincipalDependency,
    ) -> Any:
        result = await _run(
            request,
            principal,
            commands.Recommend(owner_id=body.owner_id, occasion=body.occasion),
        )
        return result.as_dict()

    @app.get("/recommendations/history", tags=["planner"], response_model=schemas.WardrobeSummaryOut)
    async def recommendation_history(
        owner_id: str | None = Query(default=None, alias="ownerId"),
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> Any:
        return await services.recommender.summary(
            session,
            principal=principal,
            owner_id=owner_id or principal.id,
        )

    # Notifications

    @app.get("/notifications", tags=["notifications"], response_model=schemas.NotificationPage)
    async def list_notifications(
        limit: int = Query(default=50, ge=1, le=200),
        offset: int = Query(default=0, ge=0),
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> Any:
        notifications, unread = await services.inbox.list_notifications(
            session,
            recipient_id=principal.id,
            limit=limit,
            offset=offset,
        )
        return {"notifications": notifications, "unread_count": unread}

    @app.get("/notifications/unread-count", tags=["notifications"])
    async def unread_count(
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> dict[str, int]:
        return {"unreadCount": await services.inbox.unread_count(session, recipient_id=principal.id)}

    @app.post(
        "/notifications/{notification_id}/read",
        tags=["notifications"],
        response_model=schemas.NotificationOut,
    )
    async def mark_notification_read(
        notification_id: str,
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> Any:
        return await services.inbox.mark_read(
            session,
            recipient_id=principal.id,
            notification_id=notification_id,
        )

    @app.post("/notifications/read-all", tags=["notifications"])
    async def mark_all_notifications_read(
        principal: Principal = PrincipalDependency,
        services: Services = ServicesDependency,
        session: AsyncSession = SessionDependency,
    ) -> dict[str, int]:
        return {"updated": await services.inbox.mark_all_read(session, recipient_id=principal.id)}

    return app


app = create_app()
