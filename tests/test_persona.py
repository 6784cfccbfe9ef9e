from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

try:
    from controller.persona import default_persona
    from controller.persona import load_persona
except ModuleNotFoundError:
    load_persona = None

REPO_PERSONA = Path(__file__).resolve().parents[1] / "config" / "persona.yml"


@unittest.skipIf(load_persona is None, "PyYAML not installed")
class PersonaTests(unittest.TestCase):
    def test_repo_persona_loads_cleanly(self):
        persona, warning = load_persona(REPO_PERSONA)
        self.assertIsNone(warning)
        self.assertEqual(persona.bot_name, "Ferret9")
        self.assertTrue(persona.tone_rules)

    def test_preamble_names_bot_and_lists_sections(self):
        preamble = default_persona().render_preamble("Ferret9")
        self.assertTrue(preamble.startswith("You are Ferret9, an AI assistant for developers at F9 Global."))
        self.assertIn("TONE ADAPTABILITY:", preamble)
        self.assertIn("- Use Markdown for code formatting and structured responses", preamble)

    def test_preamble_name_override(self):
        self.assertTrue(default_persona().render_preamble("Otter").startswith("You are Otter,"))

    def test_missing_file_falls_back_with_warning(self):
        persona, warning = load_persona("/nonexistent/persona.yml")
        self.assertIn("not found", warning)
        self.assertEqual(persona, default_persona())

    def test_malformed_file_falls_back_with_warning(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "persona.yml"
            path.write_text("- just\n- a list\n", encoding="utf-8")
            persona, warning = load_persona(path)
        self.assertIn("Invalid persona format", warning)
        self.assertEqual(persona.bot_name, "Ferret9")

    def test_partial_file_keeps_defaults_for_missing_sections(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "persona.yml"
            path.write_text("bot_name: Otter\ntone_rules:\n  - Be brief\n", encoding="utf-8")
            persona, warning = load_persona(path)
        self.assertIsNone(warning)
        self.assertEqual(persona.bot_name, "Otter")
        self.assertEqual(persona.tone_rules, ["Be brief"])
        self.assertEqual(persona.technical_capabilities, default_persona().technical_capabilities)


if __name__ == "__main__":
    unittest.main()
