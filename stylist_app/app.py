"""Application bootstrap: builds the collaborators and services once per process."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from agents.closet_analyzer import ClosetAnalyzer
from agents.recommendation_generator import RecommendationGenerator
from agents.shopping_assistant import ShoppingAssistant
from memory.rate_limiter import RateLimiter
from memory.repositories import ClosetRepository, EventRepository, RecommendationRepository
from memory.usage_ledger import UsageLedger
from memory.user_profile import UserProfileService
from stylist_app.config import StylistConfig
from stylist_app.logging_config import configure_logging, get_logger, log_event
from tools.auth import FirebaseTokenVerifier, TokenVerifier
from tools.blob_storage import BlobStorage, FirebaseBlobStorage, LocalBlobStorage
from tools.document_store import DocumentStore, FirestoreDocumentStore, SQLiteDocumentStore
from tools.llm_gateway import LLMGateway
from tools.weather_provider import OpenWeatherProvider, WeatherProvider

LOGGER = get_logger(__name__)

FIREBASE_APP_NAME = "personal-stylist"


class StylistApp:
    """Wires the document store, blob storage, providers and services together.

    Every collaborator can be injected, which is how the tests swap in
    SQLite stores, fake model clients and fake token verifiers.
    """

    def __init__(
        self,
        config: StylistConfig | None = None,
        store: DocumentStore | None = None,
        gateway: LLMGateway | None = None,
        weather_provider: WeatherProvider | None = None,
        blob_storage: BlobStorage | None = None,
        token_verifier: TokenVerifier | None = None,
    ) -> None:
        self.config = config or StylistConfig.from_env()
        configure_logging()
        self._firebase_app: Any = None

        self.store = store or self._build_store()
        self.blob_storage = blob_storage or self._build_blob_storage()
        self.token_verifier = token_verifier or FirebaseTokenVerifier(app=self._ensure_firebase_app())
        self.gateway = gateway or LLMGateway(
            api_key=self.config.anthropic_api_key,
            default_model=self.config.model,
        )
        self.weather_provider = weather_provider or OpenWeatherProvider(api_key=self.config.weather_api_key)

        self.events = EventRepository(self.store)
        self.closet = ClosetRepository(self.store, blobs=self.blob_storage)
        self.recommendations = RecommendationRepository(self.store)
        self.profiles = UserProfileService(self.store)
        self.rate_limiter = RateLimiter(self.store)
        self.usage_ledger = UsageLedger(self.store)

        self.generator = RecommendationGenerator(
            events=self.events,
            profiles=self.profiles,
            closet=self.closet,
            recommendations=self.recommendations,
            gateway=self.gateway,
            usage_ledger=self.usage_ledger,
            max_tokens=self.config.recommendation_max_tokens,
        )
        self.closet_analyzer = ClosetAnalyzer(
            gateway=self.gateway,
            allowed_image_hosts=self.config.allowed_image_hosts,
            usage_ledger=self.usage_ledger,
            timeout_seconds=self.config.analysis_timeout_seconds,
            max_tokens=self.config.analysis_max_tokens,
        )
        self.shopping = ShoppingAssistant(events=self.events, recommendations=self.recommendations)

        log_event(
            LOGGER,
            logging.INFO,
            "stylist_app_ready",
            store_backend=type(self.store).__name__,
            blob_backend=type(self.blob_storage).__name__,
            model=self.config.model,
            ai_configured=self.gateway.is_configured,
        )

    @property
    def uses_firebase(self) -> bool:
        return self.config.store_backend.lower() == "firestore"

    def _ensure_firebase_app(self) -> Any:
        """Initialise (or reuse) the named firebase_admin app."""

        if self._firebase_app is not None:
            return self._firebase_app

        import firebase_admin
        from firebase_admin import credentials

        try:
            self._firebase_app = firebase_admin.get_app(FIREBASE_APP_NAME)
            return self._firebase_app
        except ValueError:
            pass

        credential = (
            credentials.Certificate(self.config.firebase_credentials_path)
            if self.config.firebase_credentials_path
            else credentials.ApplicationDefault()
        )
        options = {"projectId": self.config.project_id}
        if self.config.storage_bucket:
            options["storageBucket"] = self.config.storage_bucket
        self._firebase_app = firebase_admin.initialize_app(credential, options, name=FIREBASE_APP_NAME)
        log_event(LOGGER, logging.INFO, "firebase_initialized", project_id=self.config.project_id)
        return self._firebase_app

    def _build_store(self) -> DocumentStore:
        if self.uses_firebase:
            return FirestoreDocumentStore(app=self._ensure_firebase_app())
        return SQLiteDocumentStore(self.config.store_path or "data/stylist.db")

    def _build_blob_storage(self) -> BlobStorage:
        if self.uses_firebase and self.config.storage_bucket:
            return FirebaseBlobStorage(bucket_name=self.config.storage_bucket, app=self._ensure_firebase_app())
        return LocalBlobStorage(Path(self.config.blob_dir or "data/blobs"), base_url=self.config.blob_base_url)

    def health(self) -> dict:
        return {
            "status": "ok",
            "service": "personal-stylist",
            "environment": self.config.environment or "local",
            "model": self.config.model,
            "aiConfigured": self.gateway.is_configured,
            "weatherConfigured": bool(self.config.weather_api_key),
        }


__all__ = ["FIREBASE_APP_NAME", "StylistApp"]
