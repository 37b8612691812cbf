import unittest

from domain.entities import ChatMessage
from domain.errors import ExternalCapabilityFailure
from infrastructure.llm.capabilities import LLMClarifier, LLMPreferenceExtractor, LLMReplier
from infrastructure.llm.prompts import replier_prompt


class StubChatClient:
    def __init__(self, answer: str) -> None:
        self._answer = answer
        self.calls: list[tuple[str, str, bool]] = []

    def complete(self, system_prompt: str, user_prompt: str, *, json_output: bool = False) -> str:
        self.calls.append((system_prompt, user_prompt, json_output))
        return self._answer


HISTORY = [ChatMessage(role="user", content="I like biking and board games")]
OPTIONS = ["cycling", "games", "running"]


class TestLLMPreferenceExtractor(unittest.TestCase):
    def test_parses_json_and_maps_onto_options(self):
        client = StubChatClient('{"preferences": ["Cycling", "games", "games"]}')

        preferences = LLMPreferenceExtractor(client).extract(HISTORY, OPTIONS)

        self.assertEqual(preferences, ["cycling", "games"])
        _, prompt, json_output = client.calls[0]
        self.assertTrue(json_output)
        self.assertIn("cycling, games, running", prompt)
        self.assertIn("user: I like biking and board games", prompt)

    def test_strips_code_fences(self):
        client = StubChatClient('```json\n{"preferences": ["running"]}\n```')

        self.assertEqual(LLMPreferenceExtractor(client).extract(HISTORY, OPTIONS), ["running"])

    def test_empty_answer_means_no_preferences(self):
        client = StubChatClient('{"preferences": []}')

        self.assertEqual(LLMPreferenceExtractor(client).extract(HISTORY, OPTIONS), [])

    def test_invalid_json_raises(self):
        for answer in ("cycling please", '{"preferences": "cycling"}'):
            with self.assertRaises(ExternalCapabilityFailure):
                LLMPreferenceExtractor(StubChatClient(answer)).extract(HISTORY, OPTIONS)


class TestLLMGenerators(unittest.TestCase):
    def test_clarifier_includes_options(self):
        client = StubChatClient("What do you enjoy?")

        self.assertEqual(LLMClarifier(client).clarify(HISTORY, OPTIONS), "What do you enjoy?")
        self.assertIn("cycling, games, running", client.calls[0][1])

    def test_replier_lists_groups(self):
        client = StubChatClient("Join the Riders!")

        answer = LLMReplier(client).reply(HISTORY, [("Riders", "Sunday rides")])

        self.assertEqual(answer, "Join the Riders!")
        self.assertIn("- Riders: Sunday rides", client.calls[0][1])

    def test_replier_prompt_without_groups(self):
        self.assertIn("(no matching groups)", replier_prompt(HISTORY, []))


if __name__ == "__main__":
    unittest.main()
