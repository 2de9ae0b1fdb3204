"""FastAPI server exposing the stylist endpoints for deployment."""

from __future__ import annotations

import base64
import binascii
import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, Header, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError as FastAPIRequestValidationError
from fastapi.responses import JSONResponse
from PIL import UnidentifiedImageError

from logic.safety import validate_image_file
from logic.shopping_items import selection_total
from logic.validation import (
    AnalyzeClosetItemRequest,
    ClosetUploadRequest,
    CreateProfileRequest,
    GenerateRecommendationsRequest,
    ResetEventRequest,
    SelectOutfitRequest,
    ShoppingQuery,
    parse_request,
)
from memory.rate_limiter import RATE_LIMITS, RateLimitConfig
from models.closet_item import ClosetImages, ClosetItem, ClosetTags
from models.event import SelectedOutfit
from stylist_app.app import StylistApp
from stylist_app.errors import (
    CostLimitExceededError,
    InvalidImageFileError,
    NotFoundError,
    RateLimitExceededError,
    RequestValidationError,
    ServiceNotConfiguredError,
    StylistError,
)
from stylist_app.logging_config import correlation_context, get_logger, log_event
from tools.auth import AuthenticatedUser, extract_bearer_token, verify_ownership

LOGGER = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def _stylist(request: Request) -> StylistApp:
    return request.app.state.stylist


def current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> AuthenticatedUser:
    """Resolve the caller from the bearer token."""

    token = extract_bearer_token(authorization)
    return _stylist(request).token_verifier.verify(token)


def _enforce_rate_limit(stylist: StylistApp, user_id: str, config: RateLimitConfig, response: Response) -> None:
    decision = stylist.rate_limiter.check(user_id, config)
    decision.raise_for_limit()
    response.headers.update(decision.headers())


def _error_response(exc: StylistError, development: bool) -> JSONResponse:
    payload = exc.to_payload()
    if development and exc.__cause__ is not None and "details" not in payload:
        payload["details"] = str(exc.__cause__)
    headers = exc.headers() if isinstance(exc, RateLimitExceededError) else None
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(payload), headers=headers)


def create_app(stylist: StylistApp | None = None) -> FastAPI:
    """Build the FastAPI application around a wired ``StylistApp``."""

    stylist = stylist or StylistApp()
    app = FastAPI(title="Personal Stylist", version="0.1.0")
    app.state.stylist = stylist
    development = stylist.config.is_development

    @app.middleware("http")
    async def correlation_middleware(request: Request, call_next):
        with correlation_context(request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex) as correlation_id:
            response = await call_next(request)
            response.headers[CORRELATION_HEADER] = correlation_id
            return response

    @app.exception_handler(StylistError)
    async def handle_stylist_error(request: Request, exc: StylistError) -> JSONResponse:
        level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
        log_event(
            LOGGER,
            level,
            "request_failed",
            path=request.url.path,
            status_code=exc.status_code,
            error_code=exc.error_code,
        )
        return _error_response(exc, development)

    @app.exception_handler(FastAPIRequestValidationError)
    async def handle_validation_error(request: Request, exc: FastAPIRequestValidationError) -> JSONResponse:
        error = RequestValidationError("Validation failed", details=jsonable_encoder(exc.errors()))
        return _error_response(error, development)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        log_event(LOGGER, logging.ERROR, "request_crashed", path=request.url.path, exc_info=exc)
        payload: Dict[str, Any] = {"error": "internal_error", "message": "Internal server error"}
        if development:
            payload["details"] = str(exc)
        return JSONResponse(status_code=500, content=payload)

    @app.get("/healthz")
    def healthcheck() -> dict:
        """Lightweight readiness probe for container platforms."""

        return stylist.health()

    @app.post("/api/admin/create-profile")
    def create_profile(
        body: Optional[Dict[str, Any]] = Body(default=None),
        user: AuthenticatedUser = Depends(current_user),
    ) -> dict:
        payload = parse_request(CreateProfileRequest, body or {})
        profile, created = stylist.profiles.create_profile(
            user.uid,
            email=payload.email or user.email or "",
            display_name=payload.display_name or "",
            photo_url=payload.photo_url,
        )
        if not created:
            return {"success": True, "message": "Profile already exists"}
        return {
            "success": True,
            "message": "Profile created successfully",
            "profile": jsonable_encoder(profile.to_document()),
        }

    @app.post("/api/admin/reset-event")
    def reset_event(
        body: Dict[str, Any] = Body(...),
        user: AuthenticatedUser = Depends(current_user),
    ) -> dict:
        payload = parse_request(ResetEventRequest, body)
        event = stylist.events.get(payload.event_id)
        if event is None:
            raise NotFoundError("Event not found")
        verify_ownership(user, event.user_id)
        stylist.events.reset(payload.event_id)
        log_event(LOGGER, logging.INFO, "event_reset", event_id=payload.event_id)
        return {"success": True, "message": "Event status reset"}

    @app.post("/api/closet/analyze")
    def analyze_closet_item(
        response: Response,
        body: Dict[str, Any] = Body(...),
        user: AuthenticatedUser = Depends(current_user),
    ) -> dict:
        payload = parse_request(AnalyzeClosetItemRequest, body)
        item = None
        if payload.item_id:
            item = stylist.closet.get(payload.item_id)
            if item is None:
                raise NotFoundError("Closet item not found")
            verify_ownership(user, item.user_id)
        _enforce_rate_limit(stylist, user.uid, RATE_LIMITS["AI_CLOSET_ANALYSIS"], response)

        result = stylist.closet_analyzer.analyze(user.uid, payload.image_url)
        if item is not None and result.note is None:
            stylist.closet.update(item.id or "", {"aiAnalysis": result.analysis})
        return result.to_dict()

    @app.post("/api/closet/items", status_code=201)
    def upload_closet_item(
        response: Response,
        body: Dict[str, Any] = Body(...),
        user: AuthenticatedUser = Depends(current_user),
    ) -> dict:
        payload = parse_request(ClosetUploadRequest, body)
        try:
            data = base64.b64decode(payload.image_base64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidImageFileError("Image data must be base64 encoded") from exc
        validate_image_file(payload.content_type, len(data))
        _enforce_rate_limit(stylist, user.uid, RATE_LIMITS["CLOSET_UPLOAD"], response)

        try:
            urls = stylist.blob_storage.upload_image_versions(
                data, user.uid, payload.category, payload.filename, payload.content_type
            )
        except (UnidentifiedImageError, OSError) as exc:
            raise InvalidImageFileError("Image could not be decoded") from exc

        item = ClosetItem(
            user_id=user.uid,
            category=payload.category,
            subcategory=payload.subcategory,
            brand=payload.brand,
            price=payload.price,
            retailer=payload.retailer,
            images=ClosetImages(**urls),
            tags=ClosetTags(
                refuse_to_rewear=payload.refuse_to_rewear,
                prefer_to_rewear=payload.prefer_to_rewear,
            ),
        )
        item_id = stylist.closet.create(item)
        log_event(LOGGER, logging.INFO, "closet_item_created", item_id=item_id, category=payload.category)
        return {"success": True, "itemId": item_id, "images": urls}

    @app.delete("/api/closet/items/{item_id}")
    def delete_closet_item(item_id: str, user: AuthenticatedUser = Depends(current_user)) -> dict:
        item = stylist.closet.get(item_id)
        if item is None:
            raise NotFoundError("Closet item not found")
        verify_ownership(user, item.user_id)
        stylist.closet.delete(item)
        return {"success": True}

    @app.post("/api/recommendations/generate")
    def generate_recommendations(
        response: Response,
        body: Dict[str, Any] = Body(...),
        user: AuthenticatedUser = Depends(current_user),
    ) -> dict:
        payload = parse_request(GenerateRecommendationsRequest, body)
        verify_ownership(user, payload.user_id)
        _enforce_rate_limit(stylist, payload.user_id, RATE_LIMITS["AI_RECOMMENDATIONS"], response)

        cost = stylist.usage_ledger.check_cost_threshold(payload.user_id, stylist.config.monthly_cost_limit_usd)
        if cost.exceeded:
            raise CostLimitExceededError(cost.current_cost, cost.threshold)
        if not stylist.gateway.is_configured:
            raise ServiceNotConfiguredError("AI service not configured")

        result = stylist.generator.generate(payload.user_id, payload.event_id)
        return result.to_dict()

    @app.post("/api/events/{event_id}/select-outfit")
    def select_outfit(
        event_id: str,
        body: Dict[str, Any] = Body(...),
        user: AuthenticatedUser = Depends(current_user),
    ) -> dict:
        payload = parse_request(SelectOutfitRequest, body)
        event = stylist.events.get(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        verify_ownership(user, event.user_id)
        recommendation = stylist.recommendations.get(payload.recommendation_id)
        if recommendation is None or recommendation.event_id != event_id:
            raise NotFoundError("Recommendation not found")

        selection = SelectedOutfit(
            recommendation_id=payload.recommendation_id,
            mode=payload.mode,
            selected_alternatives=payload.selected_alternatives,
        )
        selection.total_price = selection_total(recommendation, selection)
        stylist.events.select_outfit(event_id, selection)
        return {"success": True, "selectedOutfit": selection.model_dump(by_alias=True)}

    @app.get("/api/weather")
    def current_weather(
        response: Response,
        city: Optional[str] = Query(default=None),
        state: Optional[str] = Query(default=None),
        user: AuthenticatedUser = Depends(current_user),
    ) -> dict:
        if not city or not state:
            raise RequestValidationError(
                "City and state are required",
                details=[{"loc": ["query", "city" if not city else "state"], "msg": "required"}],
            )
        _enforce_rate_limit(stylist, user.uid, RATE_LIMITS["WEATHER_API"], response)
        return stylist.weather_provider.get_current_weather(city, state).to_dict()

    @app.get("/api/shopping")
    def shopping_list(
        sort_by: str = Query(default="event-date-asc", alias="sortBy"),
        event_ids: Optional[List[str]] = Query(default=None, alias="eventIds"),
        categories: Optional[List[str]] = Query(default=None),
        statuses: Optional[List[str]] = Query(default=None),
        min_price: Optional[float] = Query(default=None, alias="minPrice"),
        max_price: Optional[float] = Query(default=None, alias="maxPrice"),
        retailers: Optional[List[str]] = Query(default=None),
        urgent_only: bool = Query(default=False, alias="urgentOnly"),
        closet_items_only: bool = Query(default=False, alias="closetItemsOnly"),
        purchase_items_only: bool = Query(default=False, alias="purchaseItemsOnly"),
        user: AuthenticatedUser = Depends(current_user),
    ) -> dict:
        query = parse_request(
            ShoppingQuery,
            {
                "sortBy": sort_by,
                "eventIds": event_ids,
                "categories": categories,
                "statuses": statuses,
                "minPrice": min_price,
                "maxPrice": max_price,
                "retailers": retailers,
                "urgentOnly": urgent_only,
                "closetItemsOnly": closet_items_only,
                "purchaseItemsOnly": purchase_items_only,
            },
        )
        return stylist.shopping.build_shopping_list(user.uid, query)

    @app.get("/api/usage")
    def usage(user: AuthenticatedUser = Depends(current_user)) -> dict:
        ledger = stylist.usage_ledger
        summary = ledger.get_current_month_usage(user.uid)
        if summary:
            summary.pop("id", None)
        cost = ledger.check_cost_threshold(user.uid, stylist.config.monthly_cost_limit_usd)
        rate_limits = {
            config.endpoint: stylist.rate_limiter.get_usage_stats(user.uid, config)
            for config in (RATE_LIMITS["AI_RECOMMENDATIONS"], RATE_LIMITS["AI_CLOSET_ANALYSIS"])
        }
        return jsonable_encoder(
            {
                "currentMonth": summary,
                "costCheck": cost.to_dict(),
                "rateLimits": rate_limits,
                "history": ledger.get_usage_history(user.uid),
            }
        )

    return app


def get_app() -> FastAPI:
    """Application factory for ASGI servers."""

    return create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.api:get_app", factory=True, host="0.0.0.0", port=8080, reload=False)
