"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from dam_tagging.adapters.dam_assignment import HttpxBatchChangeGateway
from dam_tagging.adapters.dam_client import HttpxDamClient
from dam_tagging.adapters.openai_analysis_client import OpenAIAnalysisClient
from dam_tagging.config import Settings
from dam_tagging.services.analysis import ImageAnalysisService
from dam_tagging.services.assignment import TagAssignmentOrchestrator
from dam_tagging.services.media import MediaMapper, MediaSearchService
from dam_tagging.services.sessions import SessionManager
from dam_tagging.services.tag_values import TagValueResolver
from dam_tagging.services.tagging import ImageTaggingService
from dam_tagging.services.tags import TagResolver
from dam_tagging.services.taxonomy import TaxonomyCache


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_manager: SessionManager
    taxonomy_cache: TaxonomyCache
    tag_resolver: TagResolver
    tag_value_resolver: TagValueResolver
    media_search_service: MediaSearchService
    orchestrator: TagAssignmentOrchestrator
    image_tagging_service: ImageTaggingService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    dam_client = HttpxDamClient.create(
        base_url=resolved_settings.dam_base_url,
        timeout_seconds=resolved_settings.dam_timeout_seconds,
    )
    session_manager = SessionManager(
        client=dam_client,
        username=resolved_settings.dam_username,
        password=resolved_settings.dam_password,
    )
    taxonomy_cache = TaxonomyCache(session=session_manager, client=dam_client)
    session_manager.on_established(taxonomy_cache.refresh)
    tag_resolver = TagResolver(
        session=session_manager, client=dam_client, cache=taxonomy_cache
    )
    tag_value_resolver = TagValueResolver(session=session_manager, client=dam_client)
    media_search_service = MediaSearchService(
        session=session_manager,
        client=dam_client,
        mapper=MediaMapper(),
        max_page_size=resolved_settings.dam_max_page_size,
    )
    orchestrator = TagAssignmentOrchestrator(
        session=session_manager,
        tag_resolver=tag_resolver,
        value_resolver=tag_value_resolver,
        gateway=HttpxBatchChangeGateway(
            dam_client=dam_client, path=resolved_settings.dam_assign_path
        ),
    )
    analysis_client = OpenAIAnalysisClient.create(resolved_settings.openai_api_key)
    image_tagging_service = ImageTaggingService(
        analysis_service=ImageAnalysisService(
            client=analysis_client,
            model=resolved_settings.openai_model,
            max_tags=resolved_settings.analysis_max_tags,
        ),
        orchestrator=orchestrator,
        keyword_tag=resolved_settings.dam_keyword_tag,
    )

    async def close_resources() -> None:
        session_manager.invalidate()
        await dam_client.close()
        await analysis_client.close()

    return AppContainer(
        settings=resolved_settings,
        session_manager=session_manager,
        taxonomy_cache=taxonomy_cache,
        tag_resolver=tag_resolver,
        tag_value_resolver=tag_value_resolver,
        media_search_service=media_search_service,
        orchestrator=orchestrator,
        image_tagging_service=image_tagging_service,
        close_resources=close_resources,
    )
