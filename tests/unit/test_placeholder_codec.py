import unittest

from xcstrings_translator.placeholder_codec import (
    ProtectionResult,
    find_placeholders,
    protect,
    restore
)


class TestProtect(unittest.TestCase):
    def test_object_specifier(self):
        protected, placeholders = protect("Hello %@")
        self.assertEqual(protected, "Hello <<<PH0>>>")
        self.assertEqual(placeholders, ["%@"])

    def test_positional_specifiers_keep_order(self):
        result = protect("%1$lld / %2$lld tabs")
        self.assertEqual(result.text, "<<<PH0>>> / <<<PH1>>> tabs")
        self.assertEqual(result.placeholders, ["%1$lld", "%2$lld"])

    def test_empty_and_plain_text(self):
        self.assertEqual(protect(""), ProtectionResult("", []))
        self.assertEqual(protect("Hello world"), ProtectionResult("Hello world", []))

    def test_mixed_placeholder_classes_in_text_order(self):
        text = "{name} has %d items\\nand 50%% off %1$@"
        protected, placeholders = protect(text)
        self.assertEqual(placeholders, ["{name}", "%d", "\\n", "%%", "%1$@"])
        self.assertEqual(protected, "<<<PH0>>> has <<<PH1>>> items<<<PH2>>>and 50<<<PH3>>> off <<<PH4>>>")

    def test_length_modifiers(self):
        _, placeholders = protect("%ld of %lld, %lu left, %f%%")
        self.assertEqual(placeholders, ["%ld", "%lld", "%lu", "%f", "%%"])

    def test_escaped_percent_is_not_a_specifier(self):
        # "%%d" is a literal percent sign followed by the letter d.
        protected, placeholders = protect("100%%d")
        self.assertEqual(placeholders, ["%%"])
        self.assertEqual(protected, "100<<<PH0>>>d")

    def test_escape_sequences(self):
        _, placeholders = protect("Line\\tone\\rtwo\\n")
        self.assertEqual(placeholders, ["\\t", "\\r", "\\n"])

    def test_real_newline_is_not_protected(self):
        self.assertEqual(protect("Line one\nLine two").placeholders, [])

    def test_repeated_placeholder_gets_separate_tokens(self):
        protected, placeholders = protect("%@ and %@")
        self.assertEqual(protected, "<<<PH0>>> and <<<PH1>>>")
        self.assertEqual(placeholders, ["%@", "%@"])

    def test_rejects_non_string(self):
        with self.assertRaises(ValueError):
            protect(None)

    def test_placeholder_count_matches_find_placeholders(self):
        text = "%1$@ sent {count} files (%.2f MB) to %2$@\\n"
        self.assertEqual(protect(text).placeholders, find_placeholders(text))


class TestRestore(unittest.TestCase):
    def test_round_trip(self):
        samples = [
            "",
            "Hello world",
            "Hello %@",
            "%1$lld / %2$lld tabs",
            "{count} items, %d%% done\\n",
            "%%%@%%",
            "Nested {{braces}} and %llx",
            "Xin chào %1$@, bạn có %2$ld tin nhắn",
        ]
        for text in samples:
            with self.subTest(text=text):
                self.assertEqual(restore(*protect(text)), text)

    def test_restore_after_translation_and_reordering(self):
        protected, placeholders = protect("%1$lld / %2$lld tabs")
        translated = "<<<PH1>>> thẻ trên <<<PH0>>>"
        self.assertEqual(restore(translated, placeholders), "%2$lld thẻ trên %1$lld")

    def test_repeated_token_is_restored_everywhere(self):
        self.assertEqual(restore("<<<PH0>>> <<<PH0>>>", ["%@"]), "%@ %@")

    def test_unknown_token_is_left_alone(self):
        self.assertEqual(restore("<<<PH0>>> <<<PH3>>>", ["%d"]), "%d <<<PH3>>>")

    def test_double_digit_tokens_do_not_collide(self):
        text = " ".join(f"%{i + 1}$@" for i in range(12))
        protected, placeholders = protect(text)
        self.assertIn("<<<PH11>>>", protected)
        self.assertEqual(restore(protected, placeholders), text)


if __name__ == '__main__':
    unittest.main()
