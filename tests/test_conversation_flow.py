import unittest

from fakes import CATALOG, KeywordEmbedder, RecordingClarifier, RecordingReplier, ScriptedExtractor, UnreachableIndex

from application.conversation.flow import ConversationFlow, next_step
from application.conversation.state import initial_state
from application.services.retrieval_engine import RetrievalEngine
from application.use_cases.seed_catalog import seed_catalog
from domain.entities import MAX_MESSAGES, ChatMessage, FlowStep, GroupCatalogEntry, PreferenceState
from domain.errors import BackendUnavailable, ExternalCapabilityFailure
from infrastructure.storage.in_memory_group_index import InMemoryGroupIndex

TAGS = ("cycling", "social", "running", "fitness", "games")


def build_flow(extractor, clarifier=None, replier=None, catalog=CATALOG, index=None):
    embedder = KeywordEmbedder()
    if index is None:
        index = InMemoryGroupIndex()
        seed_catalog(catalog, embedder=embedder, index=index)
    return ConversationFlow(
        extractor=extractor,
        clarifier=clarifier or RecordingClarifier(),
        replier=replier or RecordingReplier(),
        retrieval_engine=RetrievalEngine(embedder, index),
    )


class TestNextStep(unittest.TestCase):
    def test_branch_depends_only_on_preferences(self):
        empty = PreferenceState(messages=(ChatMessage(role="user", content="x"),) * 9)
        chosen = PreferenceState(current_preferences=("cycling",))

        self.assertIs(next_step(FlowStep.EXTRACTING_PREFERENCES, empty), FlowStep.CLARIFYING)
        self.assertIs(next_step(FlowStep.EXTRACTING_PREFERENCES, chosen), FlowStep.REPLYING)
        self.assertIs(next_step(FlowStep.CLARIFYING, chosen), FlowStep.DONE)
        self.assertIs(next_step(FlowStep.REPLYING, empty), FlowStep.DONE)

    def test_done_is_terminal(self):
        with self.assertRaises(ValueError):
            next_step(FlowStep.DONE, PreferenceState())


class TestConversationFlow(unittest.TestCase):
    def test_no_preferences_asks_clarifying_question(self):
        clarifier = RecordingClarifier("Which activities do you enjoy?")
        flow = build_flow(ScriptedExtractor([]), clarifier=clarifier)
        state = initial_state(TAGS)

        result = flow.run_turn(state, "hello there")

        self.assertIs(result.route, FlowStep.CLARIFYING)
        self.assertEqual(result.reply, "Which activities do you enjoy?")
        self.assertEqual(
            result.state.messages,
            (
                ChatMessage(role="user", content="hello there"),
                ChatMessage(role="assistant", content="Which activities do you enjoy?"),
            ),
        )
        self.assertEqual(result.state.retrieved_groups, ())
        self.assertEqual(clarifier.calls[0][1], TAGS)

    def test_preferences_lead_to_reply_with_matched_groups(self):
        catalog = [
            GroupCatalogEntry(id="1", name="Riders", description="Social rides", tags=("cycling", "social")),
            GroupCatalogEntry(id="2", name="Runners", description="5k", tags=("running",)),
        ]
        replier = RecordingReplier()
        flow = build_flow(ScriptedExtractor(["cycling"]), replier=replier, catalog=catalog)

        result = flow.run_turn(initial_state(TAGS), "I love cycling")

        self.assertIs(result.route, FlowStep.REPLYING)
        self.assertEqual(result.state.current_preferences, ("cycling",))
        self.assertEqual(result.state.retrieved_groups, (catalog[0],))
        self.assertEqual(len(result.state.messages), 2)
        self.assertEqual(result.reply, "Try: Riders")
        self.assertEqual(replier.calls[0][1], [("Riders", "Social rides")])

    def test_reply_with_no_matches_still_replies(self):
        replier = RecordingReplier("Nothing found yet.")
        flow = build_flow(ScriptedExtractor(["knitting"]), replier=replier)

        result = flow.run_turn(initial_state(TAGS), "knitting please")

        self.assertIs(result.route, FlowStep.REPLYING)
        self.assertEqual(result.state.retrieved_groups, ())
        self.assertEqual(replier.calls[0][1], [])

    def test_routing_is_pure_function_of_extraction(self):
        state = initial_state(TAGS)
        for answer, expected in (([], FlowStep.CLARIFYING), (["games"], FlowStep.REPLYING)):
            first = build_flow(ScriptedExtractor(answer)).run_turn(state, "same message")
            second = build_flow(ScriptedExtractor(answer)).run_turn(state, "same message")
            self.assertIs(first.route, expected)
            self.assertIs(second.route, expected)

    def test_extractor_sees_full_history_and_options(self):
        extractor = ScriptedExtractor([], ["cycling"])
        flow = build_flow(extractor)

        first = flow.run_turn(initial_state(TAGS), "hi")
        flow.run_turn(first.state, "cycling maybe")

        messages, options = extractor.calls[1]
        self.assertEqual([m.content for m in messages][0], "hi")
        self.assertEqual(messages[-1], ChatMessage(role="user", content="cycling maybe"))
        self.assertEqual(options, TAGS)

    def test_preferences_replaced_each_turn(self):
        flow = build_flow(ScriptedExtractor(["cycling"], []))

        first = flow.run_turn(initial_state(TAGS), "cycling")
        second = flow.run_turn(first.state, "actually not sure")

        self.assertEqual(second.state.current_preferences, ())
        self.assertIs(second.route, FlowStep.CLARIFYING)
        self.assertEqual(second.state.retrieved_groups, first.state.retrieved_groups)

    def test_messages_never_exceed_cap(self):
        flow = build_flow(ScriptedExtractor([]))
        state = initial_state(TAGS)
        for number in range(8):
            state = flow.run_turn(state, f"message {number}").state
            self.assertLessEqual(len(state.messages), MAX_MESSAGES)

        self.assertEqual(state.messages[0].content, "message 3")

    def test_extraction_failure_aborts_turn(self):
        flow = build_flow(ScriptedExtractor(RuntimeError("model offline")))
        state = initial_state(TAGS)
        snapshot = state.to_dict()

        with self.assertRaises(ExternalCapabilityFailure):
            flow.run_turn(state, "hello")

        self.assertEqual(state.to_dict(), snapshot)

    def test_invalid_capability_output(self):
        cases = [
            build_flow(ScriptedExtractor("cycling")),
            build_flow(ScriptedExtractor(None)),
            build_flow(ScriptedExtractor(7)),
            build_flow(ScriptedExtractor([]), clarifier=RecordingClarifier("   ")),
            build_flow(ScriptedExtractor(["cycling"]), replier=RecordingReplier(42)),
        ]
        for flow in cases:
            with self.assertRaises(ExternalCapabilityFailure):
                flow.run_turn(initial_state(TAGS), "hello")

    def test_reply_failure_leaves_state_untouched(self):
        flow = build_flow(ScriptedExtractor(["cycling"]), replier=RecordingReplier(RuntimeError("boom")))
        state = initial_state(TAGS)

        with self.assertRaises(ExternalCapabilityFailure):
            flow.run_turn(state, "cycling")

        self.assertEqual(state, initial_state(TAGS))

    def test_backend_unavailable_during_reply(self):
        replier = RecordingReplier()
        flow = build_flow(ScriptedExtractor(["cycling"]), replier=replier, index=UnreachableIndex())
        state = initial_state(TAGS)

        with self.assertRaises(BackendUnavailable):
            flow.run_turn(state, "cycling")

        self.assertEqual(replier.calls, [])
        self.assertEqual(state, initial_state(TAGS))


if __name__ == "__main__":
    unittest.main()
