import unittest
from types import SimpleNamespace

from fitplan.services.template_selector import hash_seed, rank_templates, select_template


def tpl(template_id, name=None, tags=None):
    return SimpleNamespace(id=template_id, name=name or f"Template {template_id}", tags=tags or [])


class TestTemplateSelector(unittest.TestCase):

    def test_hash_seed_is_stable(self):
        self.assertEqual(hash_seed("2024-01-01:lunch"), hash_seed("2024-01-01:lunch"))
        self.assertEqual(hash_seed(""), 0)
        # "ab" -> 97 * 31 + 98
        self.assertEqual(hash_seed("ab"), 3105)

    def test_same_seed_same_pick(self):
        pool = [tpl(c) for c in "abcdefg"]
        first = select_template(pool, set(), None, seed="2024-03-05:dinner")
        for _ in range(5):
            again = select_template(pool, set(), None, seed="2024-03-05:dinner")
            self.assertEqual(again.id, first.id)

    def test_no_signals_sorts_by_id(self):
        pool = [tpl("c"), tpl("a"), tpl("b")]
        self.assertEqual([t.id for t in rank_templates(pool, None)], ["a", "b", "c"])

    def test_scenario_two_candidates_no_affinity(self):
        pool = [tpl("b"), tpl("a")]
        # Only one candidate left in the top-N when "b" is excluded
        picked = select_template(pool, {"b"}, None, seed="2024-01-01:lunch")
        self.assertEqual(picked.id, "a")

        picked = select_template(pool, set(), None, seed="2024-01-01:lunch")
        expected = ["a", "b"][hash_seed("2024-01-01:lunch") % 2]
        self.assertEqual(picked.id, expected)

    def test_used_ids_excluded(self):
        pool = [tpl("a"), tpl("b"), tpl("c")]
        for seed in ("x", "y", "z", "2024-01-01:lunch"):
            picked = select_template(pool, {"a", "b"}, None, seed=seed)
            self.assertEqual(picked.id, "c")

    def test_used_ids_reset_when_exhausted(self):
        pool = [tpl("a"), tpl("b")]
        used = {"a", "b"}
        picked = select_template(pool, used, None, seed="s")
        self.assertIsNotNone(picked)
        self.assertEqual(used, set())

    def test_avoided_foods_filtered(self):
        pool = [tpl("a", name="Peanut Noodles"), tpl("b", name="Grilled Chicken")]
        signals = {"avoided_foods": ["peanut"]}
        for seed in ("1", "2", "3", "4"):
            self.assertEqual(select_template(pool, set(), signals, seed=seed).id, "b")

    def test_avoided_foods_match_tags_and_short_names(self):
        # bidirectional: tag "shrimp" is contained in avoided "shrimp curry"
        pool = [tpl("a", name="Prawn Bowl", tags=["shrimp"]), tpl("b", name="Oats")]
        signals = {"avoided_foods": ["Shrimp Curry"]}
        self.assertEqual(select_template(pool, set(), signals, seed="q").id, "b")

    def test_avoidance_skipped_when_it_would_empty_pool(self):
        pool = [tpl("a", name="Peanut Noodles")]
        picked = select_template(pool, set(), {"avoided_foods": ["peanut"]}, seed="s")
        self.assertEqual(picked.id, "a")

    def test_affinity_and_cuisine_ranking(self):
        pool = [tpl("a"), tpl("b", tags=["Italian"]), tpl("c")]
        signals = SimpleNamespace(
            avoided_foods=[],
            favorite_cuisines=["italian"],
            template_affinity={"c": 0.5},
        )
        ranked = rank_templates(pool, signals)
        # c: 0.5, b: 0.3, a: 0
        self.assertEqual([t.id for t in ranked], ["c", "b", "a"])

        picked = select_template(pool, set(), signals, seed="any", top_n=1)
        self.assertEqual(picked.id, "c")

    def test_ties_broken_by_id(self):
        pool = [tpl("z"), tpl("m"), tpl("a")]
        signals = {"template_affinity": {"q": 1.0}}
        self.assertEqual([t.id for t in rank_templates(pool, signals)], ["a", "m", "z"])

    def test_empty_pool_returns_none(self):
        self.assertIsNone(select_template([], set(), None, seed="s"))


if __name__ == '__main__':
    unittest.main()
