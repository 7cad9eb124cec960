"""Test ConversationController"""
import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock, Mock
from urlqa.exceptions import FileReadError, GeminiServiceError, MessageNotFoundError
from urlqa.models import (
    GenerationResult,
    KnowledgeFile,
    MessageKind,
    MessageSender,
    URLGroup,
    UrlContextMetadataItem,
)
from urlqa.services.conversation import ConversationController
from urlqa.services.gemini_client import GeminiClient
from urlqa.services.knowledge_base import KnowledgeBase
from urlqa.services.network import NetworkMonitor


@pytest.fixture
def mock_gemini():
    """Mock GeminiClient"""
    client = Mock()
    client.is_configured = True
    client.generate = AsyncMock(return_value=GenerationResult(text="Here is the answer"))
    client.summarize = AsyncMock(return_value="A summary")
    client.suggest_initial_queries = AsyncMock(
        return_value=GenerationResult(text='```json\n{"suggestions": ["a", "b"]}\n```')
    )
    return client


@pytest.fixture
def kb():
    return KnowledgeBase(
        groups=[
            URLGroup(id="docs", name="Docs", urls=["https://a.example"]),
            URLGroup(id="other", name="Other", urls=["https://b.example"]),
            URLGroup(id="empty", name="Empty"),
        ]
    )


@pytest.fixture
def network():
    return NetworkMonitor(probe_url="https://probe.example", online=True)


@pytest.fixture
def controller(kb, mock_gemini, network):
    return ConversationController(kb, mock_gemini, network)


class TestTranscript:
    def test_welcome_message(self, controller):
        messages = controller.messages

        assert len(messages) == 1
        assert messages[0].sender == MessageSender.SYSTEM
        assert messages[0].kind == MessageKind.NORMAL
        assert '"Docs"' in messages[0].text

    def test_welcome_without_api_key(self, kb, mock_gemini):
        mock_gemini.is_configured = False

        controller = ConversationController(kb, mock_gemini)

        welcome = controller.messages[0]
        assert welcome.kind == MessageKind.ERROR
        assert welcome.text.startswith("Error: ")
        assert "not configured" in welcome.text

    def test_get_unknown_message(self, controller):
        with pytest.raises(MessageNotFoundError):
            controller.get_message("nope")


@pytest.mark.asyncio
class TestSubmit:
    async def test_success(self, controller, kb, mock_gemini):
        metadata = [
            UrlContextMetadataItem(
                retrieved_url="https://a.example",
                url_retrieval_status="URL_RETRIEVAL_STATUS_SUCCESS",
            )
        ]
        mock_gemini.generate.return_value = GenerationResult(
            text="Here is the answer", url_context_metadata=metadata
        )

        message = await controller.submit("What is this?")

        assert len(controller.messages) == 3
        user, model = controller.messages[1], controller.messages[2]
        assert user.sender == MessageSender.USER
        assert user.text == "What is this?"
        assert model.id == message.id
        assert model.sender == MessageSender.MODEL
        assert model.text == "Here is the answer"
        assert model.is_loading is False
        assert model.url_context == metadata
        assert model.successful_urls() == ["https://a.example"]
        assert controller.is_loading is False

        mock_gemini.generate.assert_awaited_once_with(
            "What is this?", ["https://a.example"], []
        )

    async def test_placeholder_while_in_flight(self, controller, mock_gemini):
        release = asyncio.Event()

        async def slow_generate(*args):
            await release.wait()
            return GenerationResult(text="done")

        mock_gemini.generate.side_effect = slow_generate

        task = asyncio.create_task(controller.submit("first"))
        await asyncio.sleep(0)

        placeholder = controller.messages[-1]
        assert placeholder.is_loading is True
        assert placeholder.text == "Thinking..."
        assert controller.is_loading is True

        # Dropped, not queued
        assert await controller.submit("second") is None
        assert len(controller.messages) == 3

        release.set()
        await task
        assert controller.messages[-1].text == "done"
        assert mock_gemini.generate.await_count == 1

    async def test_rejected_while_loading(self, controller, mock_gemini):
        controller.is_loading = True

        assert await controller.submit("hello") is None
        assert len(controller.messages) == 1
        mock_gemini.generate.assert_not_called()

    async def test_rejected_while_fetching_suggestions(self, controller, mock_gemini):
        controller.is_fetching_suggestions = True

        assert await controller.submit("hello") is None
        assert len(controller.messages) == 1

    async def test_blank_query_ignored(self, controller, mock_gemini):
        assert await controller.submit("   ") is None
        assert len(controller.messages) == 1
        mock_gemini.generate.assert_not_called()

    async def test_offline(self, controller, network, mock_gemini):
        network.set_online(False)

        notice = await controller.submit("hello")

        assert len(controller.messages) == 2
        assert notice.sender == MessageSender.SYSTEM
        assert notice.kind == MessageKind.ERROR
        assert "offline" in notice.text
        mock_gemini.generate.assert_not_called()

    async def test_missing_api_key(self, controller, mock_gemini):
        mock_gemini.is_configured = False

        notice = await controller.submit("hello")

        assert len(controller.messages) == 2
        assert notice.sender == MessageSender.SYSTEM
        assert notice.text == "Error: API Key is not configured."
        mock_gemini.generate.assert_not_called()

    async def test_empty_response_fallback(self, controller, mock_gemini):
        mock_gemini.generate.return_value = GenerationResult(text="")

        message = await controller.submit("hello")

        assert message.text == "I received an empty response."
        assert message.kind == MessageKind.NORMAL

    async def test_failure_becomes_error_message(self, controller, mock_gemini):
        mock_gemini.generate.side_effect = GeminiServiceError(
            "Usage limit exceeded. Please try again later."
        )

        message = await controller.submit("hello")

        assert len(controller.messages) == 3
        assert controller.messages[1].text == "hello"
        assert message.sender == MessageSender.SYSTEM
        assert message.kind == MessageKind.ERROR
        assert message.is_error
        assert message.text == "Error: Usage limit exceeded. Please try again later."
        assert message.is_loading is False
        assert controller.is_loading is False

    async def test_next_submit_after_failure(self, controller, mock_gemini):
        mock_gemini.generate.side_effect = [
            GeminiServiceError("boom"),
            GenerationResult(text="recovered"),
        ]

        await controller.submit("one")
        message = await controller.submit("two")

        assert message.text == "recovered"
        assert len(controller.messages) == 5

    async def test_files_are_encoded(self, controller, kb, mock_gemini):
        kb.add_files(
            [
                KnowledgeFile.from_bytes("notes.txt", b"hello", "text/plain"),
                KnowledgeFile.from_bytes("pic.png", b"\x89PNG", "image/png"),
            ]
        )

        await controller.submit("Describe")

        prompt, urls, fragments = mock_gemini.generate.call_args.args
        assert prompt == "Describe"
        assert urls == ["https://a.example"]
        assert [f.kind for f in fragments] == ["text", "inline"]
        assert fragments[0].text.startswith("File: notes.txt")

    async def test_file_read_error(self, controller, kb, mock_gemini):
        kb.add_files([KnowledgeFile.from_bytes("bad.txt", b"\xff\xfe", "text/plain")])

        message = await controller.submit("Describe")

        assert message.kind == MessageKind.ERROR
        assert message.text.startswith("Error: Failed to decode file bad.txt")
        mock_gemini.generate.assert_not_called()

    async def test_submit_clears_suggestions(self, controller):
        controller.suggestions = ["a"]

        await controller.submit("hello")

        assert controller.suggestions == []

    async def test_group_switch_during_request(self, controller, kb, mock_gemini):
        release = asyncio.Event()

        async def slow_generate(*args):
            await release.wait()
            return GenerationResult(text="late")

        mock_gemini.generate.side_effect = slow_generate

        task = asyncio.create_task(controller.submit("first"))
        await asyncio.sleep(0)
        kb.set_active_group("empty")
        release.set()

        assert await task is None
        assert len(controller.messages) == 1

    async def test_empty_text_with_stop_reason_from_gateway(self, kb, network):
        """End to end with the real client: non-STOP empty output becomes an error"""
        response = Mock()
        response.text = ""
        candidate = Mock()
        candidate.finish_reason = "MAX_TOKENS"
        candidate.url_context_metadata = None
        response.candidates = [candidate]
        genai_client = MagicMock()
        genai_client.aio.models.generate_content = AsyncMock(return_value=response)
        gemini = GeminiClient(api_key="test-api-key", client=genai_client)
        controller = ConversationController(kb, gemini, network)

        message = await controller.submit("hello")

        assert message.kind == MessageKind.ERROR
        assert message.sender == MessageSender.SYSTEM
        assert "MAX_TOKENS" in message.text


@pytest.mark.asyncio
class TestSummarize:
    async def test_summarize(self, controller, mock_gemini):
        message = await controller.submit("hello")

        updated = await controller.summarize(message.id, ["https://a.example"])

        assert updated.summary == "A summary"
        assert updated.is_summarizing is False
        assert controller.get_message(message.id).summary == "A summary"
        mock_gemini.summarize.assert_awaited_once_with(["https://a.example"])

    async def test_empty_urls_noop(self, controller, mock_gemini):
        message = await controller.submit("hello")

        assert await controller.summarize(message.id, []) is None

        unchanged = controller.get_message(message.id)
        assert unchanged.is_summarizing is False
        assert unchanged.summary is None
        mock_gemini.summarize.assert_not_called()

    async def test_is_summarizing_in_flight(self, controller, mock_gemini):
        message = await controller.submit("hello")
        release = asyncio.Event()

        async def slow_summarize(urls):
            await release.wait()
            return "later"

        mock_gemini.summarize.side_effect = slow_summarize

        task = asyncio.create_task(controller.summarize(message.id, ["https://a.example"]))
        await asyncio.sleep(0)
        assert controller.get_message(message.id).is_summarizing is True

        release.set()
        await task
        assert controller.get_message(message.id).is_summarizing is False

    async def test_failure_goes_to_summary(self, controller, mock_gemini):
        message = await controller.submit("hello")
        mock_gemini.summarize.side_effect = GeminiServiceError("Network connection failed.")

        updated = await controller.summarize(message.id, ["https://a.example"])

        assert updated.summary == "Error: Network connection failed."
        assert updated.is_summarizing is False
        assert updated.text == "Here is the answer"
        assert updated.kind == MessageKind.NORMAL

    async def test_unknown_message(self, controller):
        with pytest.raises(MessageNotFoundError):
            await controller.summarize("missing", ["https://a.example"])


@pytest.mark.asyncio
class TestSuggestionsAndGroups:
    async def test_refresh_suggestions(self, controller, mock_gemini):
        suggestions = await controller.refresh_suggestions()

        assert suggestions == ["a", "b"]
        assert controller.is_fetching_suggestions is False
        mock_gemini.suggest_initial_queries.assert_awaited_once_with(["https://a.example"])

    async def test_parse_failure_swallowed(self, controller, mock_gemini):
        mock_gemini.suggest_initial_queries.return_value = GenerationResult(text="not json")

        assert await controller.refresh_suggestions() == []

    async def test_fetch_error_swallowed(self, controller, mock_gemini):
        mock_gemini.suggest_initial_queries.side_effect = GeminiServiceError("boom")

        assert await controller.refresh_suggestions() == []
        assert controller.is_fetching_suggestions is False

    async def test_no_fetch_without_api_key(self, controller, mock_gemini):
        mock_gemini.is_configured = False

        await controller.refresh_suggestions()

        mock_gemini.suggest_initial_queries.assert_not_called()

    async def test_no_fetch_for_empty_group(self, controller, kb, mock_gemini):
        kb.set_active_group("empty")

        assert await controller.refresh_suggestions() == []
        mock_gemini.suggest_initial_queries.assert_not_called()

    async def test_group_switch_resets_transcript(self, controller, kb, mock_gemini):
        await controller.submit("hello")
        controller.suggestions = ["stale"]

        kb.set_active_group("other")

        messages = controller.messages
        assert len(messages) == 1
        assert messages[0].sender == MessageSender.SYSTEM
        assert '"Other"' in messages[0].text
        assert controller.suggestions == []

        await controller.suggestions_task
        assert controller.suggestions == ["a", "b"]
        mock_gemini.suggest_initial_queries.assert_awaited_with(["https://b.example"])

    async def test_switch_to_empty_group_schedules_nothing(self, controller, kb):
        kb.set_active_group("empty")

        assert controller.suggestions_task is None
        assert controller.suggestions == []

    async def test_adding_url_prefetches(self, controller, kb, mock_gemini):
        kb.set_active_group("empty")

        kb.add_url("https://c.example")

        await controller.suggestions_task
        assert controller.suggestions == ["a", "b"]
        mock_gemini.suggest_initial_queries.assert_awaited_once_with(["https://c.example"])

    async def test_removing_last_url_clears(self, controller, kb):
        controller.suggestions = ["a"]

        kb.remove_url("https://a.example")

        assert controller.suggestions == []

    async def test_reschedule_cancels_previous(self, controller, kb, mock_gemini):
        release = asyncio.Event()

        async def slow(urls):
            await release.wait()
            return GenerationResult(text='{"suggestions": ["old"]}')

        mock_gemini.suggest_initial_queries.side_effect = slow
        first = controller.schedule_suggestions()
        await asyncio.sleep(0)
        assert controller.is_fetching_suggestions is True

        mock_gemini.suggest_initial_queries.side_effect = None
        second = controller.schedule_suggestions()
        await second

        assert first.cancelled()
        assert controller.suggestions == ["a", "b"]
        assert controller.is_fetching_suggestions is False

    async def test_switch_to_empty_group_abandons_fetch(self, controller, kb, mock_gemini):
        """A fetch for the old group neither blocks nor leaks into the new one"""
        release = asyncio.Event()

        async def slow(urls):
            await release.wait()
            return GenerationResult(text='{"suggestions": ["old-group-q"]}')

        mock_gemini.suggest_initial_queries.side_effect = slow
        pending = controller.schedule_suggestions()
        await asyncio.sleep(0)
        assert controller.is_fetching_suggestions is True

        kb.set_active_group("empty")

        assert controller.is_fetching_suggestions is False
        message = await controller.submit("hello in new group")
        assert message is not None
        assert message.text == "Here is the answer"

        release.set()
        with pytest.raises(asyncio.CancelledError):
            await pending
        assert controller.suggestions == []
        assert controller.is_fetching_suggestions is False

    async def test_removing_last_url_invalidates_direct_fetch(self, controller, kb, mock_gemini):
        release = asyncio.Event()

        async def slow(urls):
            await release.wait()
            return GenerationResult(text='{"suggestions": ["stale"]}')

        mock_gemini.suggest_initial_queries.side_effect = slow
        fetch = asyncio.ensure_future(controller.refresh_suggestions())
        await asyncio.sleep(0)
        assert controller.is_fetching_suggestions is True

        kb.remove_url("https://a.example")
        assert controller.is_fetching_suggestions is False

        release.set()
        assert await fetch == []
        assert controller.suggestions == []
        assert controller.is_fetching_suggestions is False


class TestScheduleWithoutLoop:
    def test_no_running_loop(self, controller):
        assert controller.schedule_suggestions() is None
