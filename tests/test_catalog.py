import json
import tempfile
import unittest
from pathlib import Path

from domain.entities import GroupCatalogEntry
from domain.errors import CatalogError
from infrastructure.catalog.json_catalog import load_catalog, unique_tags


class TestCatalog(unittest.TestCase):
    def test_bundled_catalog_loads(self):
        entries = load_catalog()

        self.assertGreater(len(entries), 0)
        self.assertEqual(len({entry.id for entry in entries}), len(entries))
        self.assertIn("cycling", unique_tags(entries))

    def test_unique_tags_first_seen_order(self):
        entries = [
            GroupCatalogEntry(id="1", name="A", description="", tags=("cycling", "social")),
            GroupCatalogEntry(id="2", name="B", description="", tags=("games", "social", "cycling")),
        ]

        self.assertEqual(unique_tags(entries), ("cycling", "social", "games"))

    def test_entry_deduplicates_tags_and_builds_text(self):
        entry = GroupCatalogEntry(
            id="1", name="Riders", description="Easy rides", tags=("cycling", "cycling"), cadence="weekly"
        )

        self.assertEqual(entry.tags, ("cycling",))
        self.assertEqual(entry.embedding_text(), "Riders Easy rides cycling weekly")

    def _write(self, tmp: str, content: str) -> Path:
        path = Path(tmp) / "groups.json"
        path.write_text(content, encoding="utf-8")
        return path

    def test_reads_custom_file_in_order(self):
        data = [
            {"id": 2, "name": "B", "description": "b", "tags": ["x"]},
            {"id": "1", "name": "A", "description": "a", "tags": [], "cadence": "monthly"},
        ]
        with tempfile.TemporaryDirectory() as tmp:
            entries = load_catalog(self._write(tmp, json.dumps(data)))

        self.assertEqual([entry.id for entry in entries], ["2", "1"])
        self.assertEqual(entries[1].cadence, "monthly")

    def test_rejects_malformed_catalogs(self):
        bad_contents = [
            "not json",
            '{"id": "1"}',
            "[1, 2]",
            '[{"name": "no id"}]',
            '[{"id": "1", "name": "A"}, {"id": "1", "name": "B"}]',
        ]
        with tempfile.TemporaryDirectory() as tmp:
            for content in bad_contents:
                with self.subTest(content=content), self.assertRaises(CatalogError):
                    load_catalog(self._write(tmp, content))

    def test_missing_file(self):
        with self.assertRaises(CatalogError):
            load_catalog("/nonexistent/groups.json")


if __name__ == "__main__":
    unittest.main()
