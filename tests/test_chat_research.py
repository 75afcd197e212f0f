"""Tests for the chat and research services."""
from unittest.mock import AsyncMock, Mock

import pytest

from ai.adapters.types import Message, MessageRole, TaskKind
from services.chat import ChatService
from services.generator import Generator
from services.models import Article, ResearchRequest, SearchHit
from services.research import ResearchService

from conftest import FakeAdapter, FakeWebSearch, InMemoryArticleRepository, make_router


class TestChatService:
    @pytest.mark.asyncio
    async def test_general_persona(self):
        adapter = FakeAdapter("local", text="answer")
        chat = ChatService(make_router(adapter, task=TaskKind.CHAT))
        stream, name = await chat.chat("What is a rollup?")
        assert name == "local"
        assert await stream.collect() == "answer"
        kind, prompt, options = adapter.calls[0]
        assert kind == "generate_stream"
        assert prompt == "What is a rollup?"
        assert "Web3 technical assistant" in options.system_prompt
        assert options.max_tokens == 2048
        assert options.temperature == 0.7

    @pytest.mark.asyncio
    async def test_article_context_truncated(self):
        articles = InMemoryArticleRepository([Article(id="a1", title="Rollups", content="r" * 9000)])
        adapter = FakeAdapter("local")
        chat = ChatService(make_router(adapter, task=TaskKind.CHAT), articles)
        await chat.chat("explain", article_id="a1")
        system = adapter.calls[0][2].system_prompt
        assert '"Rollups"' in system
        assert "r" * 8000 in system
        assert "r" * 8001 not in system
        assert "[content truncated...]" in system

    @pytest.mark.asyncio
    async def test_short_article_not_truncated(self):
        articles = InMemoryArticleRepository([Article(id="a1", title="T", content="short body")])
        adapter = FakeAdapter("local")
        await ChatService(make_router(adapter, task=TaskKind.CHAT), articles).chat("q", article_id="a1")
        assert "truncated" not in adapter.calls[0][2].system_prompt

    @pytest.mark.asyncio
    async def test_selected_text_framing(self):
        adapter = FakeAdapter("local")
        chat = ChatService(make_router(adapter, task=TaskKind.CHAT))
        await chat.chat("why?", selected_text="optimistic rollups wait 7 days")
        prompt = adapter.calls[0][1]
        assert "optimistic rollups wait 7 days" in prompt
        assert prompt.endswith("why?")

    @pytest.mark.asyncio
    async def test_unknown_article(self):
        chat = ChatService(make_router(FakeAdapter("local"), task=TaskKind.CHAT), InMemoryArticleRepository())
        with pytest.raises(LookupError):
            await chat.chat("q", article_id="missing")

    @pytest.mark.asyncio
    async def test_history_uses_chat_stream(self):
        adapter = FakeAdapter("local", text="reply")
        chat = ChatService(make_router(adapter, task=TaskKind.CHAT))
        history = [Message.user("hi"), Message(role=MessageRole.ASSISTANT, content="hello"), Message.user("more")]
        stream, name = await chat.chat_with_messages(history)
        assert await stream.collect() == "reply"
        kind, messages, options = adapter.calls[0]
        assert kind == "generate_chat_stream"
        assert messages == history
        assert options.system_prompt

    @pytest.mark.asyncio
    async def test_available_models(self):
        router = make_router(FakeAdapter("up"), FakeAdapter("down", available=False), task=TaskKind.CHAT)
        assert await ChatService(router).available_models() == ["up"]


class TestResearchService:
    @pytest.mark.asyncio
    async def test_merges_web_and_local_context(self):
        articles = InMemoryArticleRepository([
            Article(title="Rollup basics", summary="Rollups batch transactions."),
            Article(title="Rollup economics", content="x" * 500),
        ])
        search = FakeWebSearch(
            hits=[SearchHit(title="L2Beat", url="https://l2beat.com", content="risk analysis")],
            answer="Rollups scale Ethereum.",
        )
        adapter = FakeAdapter("local", text="research answer")
        service = ResearchService(make_router(adapter), articles, search=search)

        response = await service.research(ResearchRequest(query="Rollup", use_web_search=True))

        assert response.content == "research answer"
        assert response.model_used == "local"
        assert response.sources == ["https://l2beat.com"]
        assert len(response.related_articles) == 2
        assert search.queries == [("Rollup Web3 blockchain", 5)]
        prompt = adapter.calls[0][1]
        assert "Rollups scale Ethereum." in prompt
        assert "risk analysis" in prompt
        assert "### Rollup basics\nRollups batch transactions." in prompt
        assert "x" * 200 + "..." in prompt
        assert "x" * 201 not in prompt
        options = adapter.calls[0][2]
        assert options.max_tokens == 4000

    @pytest.mark.asyncio
    async def test_no_context_placeholder(self):
        adapter = FakeAdapter("local")
        service = ResearchService(make_router(adapter), InMemoryArticleRepository())
        await service.research(ResearchRequest(query="MEV"))
        assert "No additional context" in adapter.calls[0][1]

    @pytest.mark.asyncio
    async def test_web_search_skipped_unless_requested(self):
        search = FakeWebSearch()
        service = ResearchService(make_router(FakeAdapter("local")), InMemoryArticleRepository(), search=search)
        await service.research(ResearchRequest(query="MEV"))
        assert search.queries == []

    @pytest.mark.asyncio
    async def test_failing_search_degrades(self):
        search = Mock()
        search.search = AsyncMock(side_effect=RuntimeError("quota exceeded"))
        service = ResearchService(make_router(FakeAdapter("local", text="ok")), InMemoryArticleRepository(), search=search)
        response = await service.research(ResearchRequest(query="MEV", use_web_search=True))
        assert response.content == "ok"
        assert response.sources == []
        search.search.assert_awaited_once_with("MEV Web3 blockchain", 5)

    @pytest.mark.asyncio
    async def test_save_as_article(self):
        articles = InMemoryArticleRepository()
        router = make_router(FakeAdapter("local", text="## Overview\nMEV is value extraction.\n\n## More\nFlashbots (relay)"))
        generator = Generator(router, articles)
        search = FakeWebSearch(hits=[SearchHit(title="t", url="https://flashbots.net", content="c")])
        service = ResearchService(router, articles, search=search, generator=generator)

        response = await service.research(ResearchRequest(query="MEV", save_article=True, use_web_search=True))

        saved = articles.items[response.saved_article_id]
        assert saved.title == "MEV"
        assert saved.slug == "mev"
        assert saved.summary == "MEV is value extraction."
        assert saved.source_urls == ["https://flashbots.net"]
        assert saved.tags == ["MEV", "Flashbots"]

    @pytest.mark.asyncio
    async def test_save_without_generator_is_logged(self):
        service = ResearchService(make_router(FakeAdapter("local")), InMemoryArticleRepository())
        response = await service.research(ResearchRequest(query="MEV", save_article=True))
        assert response.saved_article_id is None

    @pytest.mark.asyncio
    async def test_research_stream(self):
        search = FakeWebSearch(hits=[SearchHit(title=str(i), url=f"https://s/{i}") for i in range(5)])
        adapter = FakeAdapter("local", text="streamed")
        service = ResearchService(make_router(adapter), InMemoryArticleRepository(), search=search)
        stream, name = await service.research_stream(ResearchRequest(query="DA", use_web_search=True))
        assert name == "local"
        assert await stream.collect() == "streamed"
        assert search.queries == [("DA Web3 blockchain", 3)]
