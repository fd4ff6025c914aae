"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field

import pytest

from dam_tagging.adapters.dam_assignment import TagAssignmentGateway
from dam_tagging.adapters.dam_client import DamClient
from dam_tagging.config import Settings
from dam_tagging.containers import AppContainer
from dam_tagging.domain.taxonomy import TagAssignment
from dam_tagging.errors import AuthError, AuthenticationRequired, RemoteError
from dam_tagging.services.analysis import ImageAnalysisClient, ImageAnalysisService
from dam_tagging.services.assignment import TagAssignmentOrchestrator
from dam_tagging.services.media import MediaMapper, MediaSearchService
from dam_tagging.services.sessions import SessionManager
from dam_tagging.services.tag_values import TagValueResolver
from dam_tagging.services.tagging import ImageTaggingService
from dam_tagging.services.tags import TagResolver
from dam_tagging.services.taxonomy import TaxonomyCache

PASSWORD = "secret"


@dataclass
class FakeDamClient(DamClient):
    """In-memory DAM that records every remote call."""

    tags: list[dict[str, object]] = field(default_factory=list)
    values: dict[int, list[dict[str, object]]] = field(default_factory=dict)
    media_payload: dict[str, object] = field(
        default_factory=lambda: {"success": True, "items": [], "totalCount": 0}
    )
    failing_tag_names: set[str] = field(default_factory=set)
    racing_tag_names: set[str] = field(default_factory=set)
    failing_values: set[str] = field(default_factory=set)
    racing_values: set[str] = field(default_factory=set)
    rejected_credentials: set[str] = field(default_factory=set)
    reject_all: bool = False
    cancel_on_value_created: asyncio.Event | None = None
    login_calls: int = 0
    get_tags_calls: int = 0
    get_values_calls: int = 0
    created_tags: list[str] = field(default_factory=list)
    created_values: list[tuple[str, str]] = field(default_factory=list)
    searches: list[tuple[str | None, int, int]] = field(default_factory=list)
    next_id: int = 100

    def add_tag(
        self, name: str, *, allows_assignment: bool = True
    ) -> dict[str, object]:
        self.next_id += 1
        record: dict[str, object] = {
            "id": self.next_id,
            "guid": f"guid-{self.next_id}",
            "name": name,
            "isMultiplyValues": True,
            "maxHierarchy": 1,
            "isAllowAssign": allows_assignment,
            "readOnly": False,
        }
        self.tags.append(record)
        return record

    def add_value(self, tag_id: int, text: str) -> dict[str, object]:
        self.next_id += 1
        record: dict[str, object] = {
            "id": self.next_id,
            "tagId": tag_id,
            "text": text,
            "rawValue": text,
            "hasChilds": False,
        }
        self.values.setdefault(tag_id, []).append(record)
        return record

    async def login(self, username: str, password: str) -> str:
        self.login_calls += 1
        if password != PASSWORD:
            raise AuthError("Invalid credentials", remote_status=401)
        return f".AspNet.ApplicationCookie=session-{self.login_calls}"

    async def get_tags(self, credential: str) -> list[dict[str, object]]:
        self._authorize(credential)
        self.get_tags_calls += 1
        return [dict(tag) for tag in self.tags]

    async def create_custom_tag(self, credential: str, name: str) -> None:
        self._authorize(credential)
        self.created_tags.append(name)
        if name in self.failing_tag_names:
            raise RemoteError("create failed", remote_status=500)
        self.add_tag(name)
        if name in self.racing_tag_names:
            raise RemoteError("tag already exists", remote_status=409)

    async def get_tag_values(
        self, credential: str, tag_id: int, filter_text: str
    ) -> list[dict[str, object]]:
        self._authorize(credential)
        self.get_values_calls += 1
        matches = [
            dict(value)
            for value in self.values.get(tag_id, [])
            if filter_text.lower() in str(value["text"]).lower()
        ]
        await asyncio.sleep(0)
        return matches

    async def create_tag_value(
        self,
        credential: str,
        tag_guid: str,
        value: str,
        parent_id: int | None = None,
    ) -> dict[str, object]:
        self._authorize(credential)
        self.created_values.append((tag_guid, value))
        tag = next(tag for tag in self.tags if tag["guid"] == tag_guid)
        if value in self.failing_values:
            raise RemoteError("create value failed", remote_status=500)
        record = self.add_value(int(tag["id"]), value)
        if value in self.racing_values:
            raise RemoteError("value already exists", remote_status=409)
        if self.cancel_on_value_created is not None:
            self.cancel_on_value_created.set()
        return dict(record)

    async def search_media(
        self, credential: str, query_line: str | None, size: int, index: int
    ) -> dict[str, object]:
        self._authorize(credential)
        self.searches.append((query_line, size, index))
        return self.media_payload

    def _authorize(self, credential: str) -> None:
        if self.reject_all or credential in self.rejected_credentials:
            raise AuthenticationRequired("Session expired", remote_status=401)


@dataclass
class RecordingGateway(TagAssignmentGateway):
    """Gateway that records assignment calls."""

    calls: list[tuple[str, str, list[TagAssignment]]] = field(default_factory=list)
    error: RemoteError | None = None

    async def assign(
        self, credential: str, media_id: str, assignments: list[TagAssignment]
    ) -> None:
        if self.error is not None:
            raise self.error
        self.calls.append((credential, media_id, assignments))


@dataclass
class FakeAnalysisClient(ImageAnalysisClient):
    """Fake analysis client returning a fixed payload."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "description": "A sunny beach with palm trees",
            "tags": ["beach", "palm tree", "Beach"],
        }
    )

    async def analyze(
        self,
        *,
        model: str,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        return self.payload


@dataclass
class Engine:
    """Session, cache and resolvers wired the way the container wires them."""

    client: FakeDamClient
    session: SessionManager
    cache: TaxonomyCache
    tag_resolver: TagResolver
    value_resolver: TagValueResolver
    gateway: RecordingGateway
    orchestrator: TagAssignmentOrchestrator


def build_engine(client: FakeDamClient, password: str = PASSWORD) -> Engine:
    session = SessionManager(client=client, username="admin", password=password)
    cache = TaxonomyCache(session=session, client=client)
    session.on_established(cache.refresh)
    tag_resolver = TagResolver(session=session, client=client, cache=cache)
    value_resolver = TagValueResolver(session=session, client=client)
    gateway = RecordingGateway()
    orchestrator = TagAssignmentOrchestrator(
        session=session,
        tag_resolver=tag_resolver,
        value_resolver=value_resolver,
        gateway=gateway,
    )
    return Engine(
        client=client,
        session=session,
        cache=cache,
        tag_resolver=tag_resolver,
        value_resolver=value_resolver,
        gateway=gateway,
        orchestrator=orchestrator,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        dam_base_url="https://dam.example.com",
        dam_username="admin",
        dam_password=PASSWORD,
        api_token="api-token",
        openai_api_key="openai-key",
    )


@pytest.fixture
def dam_client() -> FakeDamClient:
    client = FakeDamClient()
    location = client.add_tag("Location")
    client.add_value(int(location["id"]), "Paris")
    client.add_tag("Keywords")
    return client


@pytest.fixture
def engine(dam_client: FakeDamClient) -> Engine:
    return build_engine(dam_client)


@pytest.fixture
def container(settings: Settings, engine: Engine) -> AppContainer:
    media_search_service = MediaSearchService(
        session=engine.session, client=engine.client, mapper=MediaMapper()
    )
    image_tagging_service = ImageTaggingService(
        analysis_service=ImageAnalysisService(
            client=FakeAnalysisClient(), model=settings.openai_model
        ),
        orchestrator=engine.orchestrator,
        keyword_tag=settings.dam_keyword_tag,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        session_manager=engine.session,
        taxonomy_cache=engine.cache,
        tag_resolver=engine.tag_resolver,
        tag_value_resolver=engine.value_resolver,
        media_search_service=media_search_service,
        orchestrator=engine.orchestrator,
        image_tagging_service=image_tagging_service,
        close_resources=close_resources,
    )
