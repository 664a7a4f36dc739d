from __future__ import annotations

import unittest

from trellis.errors import MalformedStageToken
from trellis.stages import StageSpec, join_stage_list, parse_stage_list, parse_stage_token


class StageTokenTests(unittest.TestCase):
    def test_plain_token_uses_stage_as_group(self) -> None:
        spec = parse_stage_token("base")
        self.assertEqual(spec, StageSpec(group="base", stage="base"))
        self.assertFalse(spec.is_multi_stage)

    def test_group_and_stage_are_split_on_colon(self) -> None:
        spec = parse_stage_token("multi:stage1")
        self.assertEqual(spec.group, "multi")
        self.assertEqual(spec.stage, "stage1")
        self.assertTrue(spec.is_multi_stage)
        self.assertEqual(str(spec), "multi:stage1")

    def test_more_than_one_colon_is_rejected(self) -> None:
        with self.assertRaises(MalformedStageToken) as ctx:
            parse_stage_token("a:b:c")
        self.assertEqual(ctx.exception.token, "a:b:c")

    def test_empty_names_are_rejected(self) -> None:
        for token in ("", ":stage", "group:"):
            with self.subTest(token=token):
                with self.assertRaises(MalformedStageToken):
                    parse_stage_token(token)

    def test_path_separators_are_rejected(self) -> None:
        with self.assertRaises(MalformedStageToken):
            parse_stage_token("features/gpu")


class StageListTests(unittest.TestCase):
    def test_order_and_duplicates_are_preserved(self) -> None:
        stages = parse_stage_list("base,multi:stage1,base,multi:stage2")
        self.assertEqual(
            [spec.token for spec in stages],
            ["base", "multi:stage1", "base", "multi:stage2"],
        )

    def test_rejoining_reproduces_the_input(self) -> None:
        for csv in ("base", "base,tools", "a:b,c,d:e,c"):
            with self.subTest(csv=csv):
                self.assertEqual(join_stage_list(parse_stage_list(csv)), csv)

    def test_empty_string_is_an_empty_list(self) -> None:
        self.assertEqual(parse_stage_list(""), [])

    def test_empty_segment_is_kept_and_then_rejected(self) -> None:
        with self.assertRaises(MalformedStageToken):
            parse_stage_list("base,,tools")

    def test_segments_are_not_trimmed(self) -> None:
        stages = parse_stage_list("base, tools")
        self.assertEqual(stages[1].stage, " tools")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
