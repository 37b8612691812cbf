import threading
import unittest

from fakes import CATALOG, KeywordEmbedder, RecordingClarifier, RecordingReplier, ScriptedExtractor

from application.conversation.flow import ConversationFlow
from application.services.retrieval_engine import RetrievalEngine
from application.use_cases.process_turn import process_turn
from application.use_cases.seed_catalog import seed_catalog
from domain.entities import FlowStep
from domain.errors import ExternalCapabilityFailure, InvalidMessage, TurnTimeout
from infrastructure.storage.in_memory_group_index import InMemoryGroupIndex


def build_flow(extractor, replier=None) -> ConversationFlow:
    embedder = KeywordEmbedder()
    index = InMemoryGroupIndex()
    seed_catalog(CATALOG, embedder=embedder, index=index)
    return ConversationFlow(
        extractor=extractor,
        clarifier=RecordingClarifier(),
        replier=replier or RecordingReplier(),
        retrieval_engine=RetrievalEngine(embedder, index),
    )


class TestProcessTurn(unittest.TestCase):
    def test_new_conversation_starts_from_tag_universe(self):
        extractor = ScriptedExtractor([])

        result = process_turn(None, "  hello  ", flow=build_flow(extractor), tag_universe=("cycling", "games"))

        self.assertEqual(result.state.available_preference_options, ("cycling", "games"))
        self.assertEqual(result.state.messages[0].content, "hello")
        self.assertIs(result.route, FlowStep.CLARIFYING)

    def test_blank_message_is_rejected(self):
        flow = build_flow(ScriptedExtractor([]))
        for message in ("", "   ", None):
            with self.assertRaises(InvalidMessage) as ctx:
                process_turn(None, message, flow=flow)
            self.assertEqual(str(ctx.exception), "Missing `message` (string) in request body.")

    def test_completes_within_timeout(self):
        result = process_turn(None, "cycling", flow=build_flow(ScriptedExtractor(["cycling"])), timeout=5.0)

        self.assertIs(result.route, FlowStep.REPLYING)
        self.assertEqual([group.id for group in result.state.retrieved_groups], ["1", "4"])

    def test_timeout_discards_turn(self):
        release = threading.Event()
        replier = RecordingReplier(hook=lambda: release.wait(2.0))
        flow = build_flow(ScriptedExtractor(["cycling"]), replier=replier)
        try:
            with self.assertRaises(TurnTimeout) as ctx:
                process_turn(None, "cycling", flow=flow, timeout=0.05)
        finally:
            release.set()

        self.assertIsInstance(ctx.exception, ExternalCapabilityFailure)


if __name__ == "__main__":
    unittest.main()
