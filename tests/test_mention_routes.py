from __future__ import annotations

import unittest

from misc.mention_routes import ROUTE_DEFAULT
from misc.mention_routes import ROUTE_HELP
from misc.mention_routes import ROUTE_REPORT
from misc.mention_routes import ROUTE_RESET
from misc.mention_routes import ROUTE_SCAN_TABLES
from misc.mention_routes import ROUTE_WHOS_WORKING
from misc.mention_routes import classify_mention_route
from misc.mention_routes import strip_bot_mention


class MentionRouteTests(unittest.TestCase):
    def test_strip_bot_mention_handles_nickname_form(self):
        self.assertEqual(strip_bot_mention("<@123456789> hello", 123456789), "hello")
        self.assertEqual(strip_bot_mention("hey <@!123456789> there", 123456789), "hey  there")
        self.assertEqual(strip_bot_mention("<@555> hi", 123456789), "<@555> hi")

    def test_simple_keywords(self):
        self.assertEqual(classify_mention_route("help")[0], ROUTE_HELP)
        self.assertEqual(classify_mention_route("HELP?")[0], ROUTE_HELP)
        self.assertEqual(classify_mention_route("reset")[0], ROUTE_RESET)
        self.assertEqual(classify_mention_route("reset conversation")[0], ROUTE_RESET)
        self.assertEqual(classify_mention_route("scan tables please")[0], ROUTE_SCAN_TABLES)

    def test_keywords_inside_sentences_go_to_generation(self):
        self.assertEqual(classify_mention_route("can you help me with python?")[0], ROUTE_DEFAULT)
        self.assertEqual(classify_mention_route("how do I reset a git branch")[0], ROUTE_DEFAULT)

    def test_report_captures_user_and_date(self):
        route, match = classify_mention_route("/report <@!987654321> March 4")
        self.assertEqual(route, ROUTE_REPORT)
        self.assertEqual(match.group("user_id"), "987654321")
        self.assertEqual(match.group("date"), "March 4")

    def test_report_without_date_captures_empty_date(self):
        route, match = classify_mention_route("report <@987654321>")
        self.assertEqual(route, ROUTE_REPORT)
        self.assertEqual(match.group("date"), "")

    def test_whos_working_variants(self):
        for prompt in ("who's working?", "whos working", "who is working right now", "status"):
            self.assertEqual(classify_mention_route(prompt)[0], ROUTE_WHOS_WORKING, prompt)

    def test_first_match_wins(self):
        # "report" precedes the status route even when both patterns match
        route, _ = classify_mention_route("report <@987654321> status of today")
        self.assertEqual(route, ROUTE_REPORT)

    def test_plain_question_is_default(self):
        self.assertEqual(classify_mention_route("what is a closure?"), (ROUTE_DEFAULT, None))


if __name__ == "__main__":
    unittest.main()
