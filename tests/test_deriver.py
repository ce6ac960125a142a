"""
Secret Deriver Test Suite

Corpus loading and target selection.
"""

import os
import tempfile
import unittest

from royale_resolver import config
from royale_resolver.config import ConfigurationError
from royale_resolver.deriver import SecretDeriver, load_corpus

PLAYER = "0x" + "ab" * 20
CORPUS = ["PLANT", "CRANE", "SPEED", "HELLO", "KEBAB", "ERASE", "CRISP", "LLAMA"]


class TestLoadCorpus(unittest.TestCase):
    """Test corpus loading."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmp.cleanup()

    def _write(self, text):
        path = os.path.join(self.tmp.name, "words.txt")
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path

    def test_bundled_corpus(self):
        words = load_corpus(config.WORDS_PATH)
        self.assertGreater(len(words), 2000)
        self.assertEqual(len(words), len(set(words)))
        self.assertTrue(all(len(w) == 5 and w.isupper() for w in words))

    def test_comments_blank_lines_case_and_duplicates(self):
        path = self._write("# header\n\nplant\nCRANE\n  Plant  \n")
        self.assertEqual(load_corpus(path), ["PLANT", "CRANE"])

    def test_missing_file(self):
        with self.assertRaises(ConfigurationError):
            load_corpus(os.path.join(self.tmp.name, "nope.txt"))

    def test_empty_file(self):
        with self.assertRaises(ConfigurationError):
            load_corpus(self._write("# only a comment\n"))

    def test_wrong_length_entry(self):
        with self.assertRaises(ConfigurationError):
            load_corpus(self._write("PLANT\nPLANTS\n"))

    def test_non_letter_entry(self):
        with self.assertRaises(ConfigurationError):
            load_corpus(self._write("PLANT\nPL4NT\n"))


class TestSecretDeriver(unittest.TestCase):
    """Test target derivation."""

    def setUp(self):
        self.deriver = SecretDeriver("unit-test-secret", CORPUS)

    def test_requires_secret_and_corpus(self):
        with self.assertRaises(ConfigurationError):
            SecretDeriver("", CORPUS)
        with self.assertRaises(ConfigurationError):
            SecretDeriver("secret", [])

    def test_deterministic_for_same_inputs(self):
        a = self.deriver.derive("7", PLAYER, "nonce-1")
        b = self.deriver.derive("7", PLAYER, "nonce-1")
        self.assertEqual(a, b)
        self.assertIn(a, CORPUS)

    def test_participant_case_does_not_matter(self):
        self.assertEqual(
            self.deriver.derive("7", PLAYER, "n"),
            self.deriver.derive("7", PLAYER.upper().replace("0X", "0x"), "n"),
        )

    def test_nonce_spreads_targets(self):
        targets = {self.deriver.derive("7", PLAYER, f"nonce-{i}") for i in range(200)}
        self.assertGreater(len(targets), 1)

    def test_secret_changes_selection(self):
        other = SecretDeriver("another-secret", CORPUS)
        picks = [self.deriver.derive("7", PLAYER, f"n{i}") for i in range(50)]
        other_picks = [other.derive("7", PLAYER, f"n{i}") for i in range(50)]
        self.assertNotEqual(picks, other_picks)

    def test_word_length(self):
        self.assertEqual(self.deriver.word_length, 5)
        self.assertEqual(len(self.deriver), len(CORPUS))


if __name__ == "__main__":
    unittest.main()
