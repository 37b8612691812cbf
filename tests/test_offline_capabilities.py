import unittest

from domain.entities import ChatMessage
from infrastructure.llm.offline import KeywordPreferenceExtractor, TemplateClarifier, TemplateReplier

OPTIONS = ["cycling", "games", "running", "walking", "books", "yoga"]


class TestKeywordPreferenceExtractor(unittest.TestCase):
    def test_matches_word_forms_in_option_order(self):
        messages = [ChatMessage(role="user", content="I love board games and I cycle to work")]

        self.assertEqual(KeywordPreferenceExtractor().extract(messages, OPTIONS), ["cycling", "games"])

    def test_ignores_assistant_messages(self):
        messages = [
            ChatMessage(role="assistant", content="Do you like running or yoga?"),
            ChatMessage(role="user", content="I'm not sure"),
        ]

        self.assertEqual(KeywordPreferenceExtractor().extract(messages, OPTIONS), [])

    def test_reads_whole_history(self):
        messages = [
            ChatMessage(role="user", content="I run most mornings"),
            ChatMessage(role="assistant", content="Nice!"),
            ChatMessage(role="user", content="and I read books"),
        ]

        self.assertEqual(KeywordPreferenceExtractor().extract(messages, OPTIONS), ["running", "books"])


class TestTemplates(unittest.TestCase):
    def test_clarifier_lists_examples(self):
        question = TemplateClarifier(examples=3).clarify([], OPTIONS)

        self.assertEqual(question, "What kinds of activities do you enjoy? For example: cycling, games or running.")

    def test_clarifier_without_options(self):
        self.assertEqual(TemplateClarifier().clarify([], []), "What kinds of activities do you enjoy?")

    def test_replier(self):
        replier = TemplateReplier()

        self.assertEqual(
            replier.reply([], [("Riders", "Sunday rides")]),
            "Here are some groups you might like:\n- Riders: Sunday rides",
        )
        self.assertIn("couldn't find any groups", replier.reply([], []))


if __name__ == "__main__":
    unittest.main()
