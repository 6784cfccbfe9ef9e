from __future__ import annotations

import unittest

from misc.chunking import InvalidArgument
from misc.chunking import chunk_message
from misc.chunking import split_fragments
from misc.chunking import truncate_message


class ChunkMessageTests(unittest.TestCase):
    def test_short_text_is_single_unlabelled_fragment(self):
        self.assertEqual(chunk_message("hello", 20), ["hello"])

    def test_empty_text_is_single_empty_fragment(self):
        self.assertEqual(chunk_message("", 20), [""])
        self.assertEqual(chunk_message(None, 20), [""])

    def test_text_exactly_at_limit_is_not_split(self):
        self.assertEqual(chunk_message("x" * 20, 20), ["x" * 20])

    def test_sentence_example_splits_into_two_labelled_parts(self):
        self.assertEqual(
            chunk_message("Hello world. This is a test.", 15),
            ["[Part 1/2] Hello world.", "[Part 2/2] This is a test."],
        )

    def test_paragraph_break_is_preferred(self):
        text = "A" * 16 + "\n\n" + "B" * 10
        fragments = split_fragments(text, 20)
        self.assertEqual([f.text for f in fragments], ["A" * 16, "B" * 10])
        self.assertEqual(fragments[0].consumed, "\n\n")

    def test_sentence_break_at_threshold_keeps_period(self):
        text = "abcdefghijklmno. pqrstu vwx."
        fragments = split_fragments(text, 20)
        self.assertEqual([f.text for f in fragments], ["abcdefghijklmno.", "pqrstu vwx."])
        self.assertEqual(fragments[0].consumed, " ")

    def test_word_break_used_when_no_sentence(self):
        fragments = split_fragments("alpha bravo charlie delta echo", 20)
        self.assertEqual([f.text for f in fragments], ["alpha bravo charlie", "delta echo"])

    def test_hard_cut_without_break_points(self):
        self.assertEqual(
            chunk_message("x" * 25, 10),
            ["[Part 1/3] " + "x" * 10, "[Part 2/3] " + "x" * 10, "[Part 3/3] " + "x" * 5],
        )

    def test_early_word_break_is_ignored(self):
        fragments = split_fragments("ab cdefghijklmnopqrstuvwxyz", 10)
        self.assertEqual(fragments[0].text, "ab cdefghi")

    def test_early_paragraph_break_falls_through_to_word(self):
        text = "one\n\ntwo three four five six"
        fragments = split_fragments(text, 20)
        self.assertEqual(fragments[0].text, "one\n\ntwo three four")

    def test_fragments_never_exceed_limit(self):
        text = ("Lorem ipsum dolor sit amet. " * 40) + ("\n\n" + "word " * 90)
        for limit in (7, 20, 64, 150):
            for fragment in split_fragments(text, limit):
                self.assertLessEqual(len(fragment.text), limit)

    def test_fragments_and_consumed_breaks_rebuild_text(self):
        text = "First paragraph here.\n\nSecond one is a bit longer. It has two sentences and more words."
        fragments = split_fragments(text, 25)
        rebuilt = "".join(f.text + f.consumed for f in fragments)
        self.assertEqual(rebuilt, text)

    def test_labels_count_all_parts(self):
        fragments = split_fragments("word " * 30, 20)
        total = len(fragments)
        for i, fragment in enumerate(fragments, start=1):
            self.assertEqual(fragment.label, f"[Part {i}/{total}] ")

    def test_non_positive_limit_raises(self):
        with self.assertRaises(InvalidArgument):
            chunk_message("hello", 0)
        with self.assertRaises(InvalidArgument):
            chunk_message("hello", -5)


class TruncateMessageTests(unittest.TestCase):
    def test_short_text_unchanged(self):
        self.assertEqual(truncate_message("hello", 10), "hello")

    def test_long_text_gets_ellipsis_within_limit(self):
        out = truncate_message("x" * 50, 10)
        self.assertEqual(out, "x" * 7 + "...")
        self.assertEqual(len(out), 10)

    def test_default_limit_is_discord_message_cap(self):
        self.assertEqual(len(truncate_message("y" * 5000)), 2000)

    def test_invalid_limit_raises(self):
        with self.assertRaises(InvalidArgument):
            truncate_message("hello", 0)


if __name__ == "__main__":
    unittest.main()
