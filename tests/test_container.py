"""Tests for container wiring."""

import asyncio

from nutrition_engine.containers import build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)
    assert container.resolution_pipeline is not None
    assert container.tool_executor.proposals is container.proposal_service
    assert container.insight_service.generative is not None
    asyncio.run(container.close_resources())
