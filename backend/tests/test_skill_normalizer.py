import itertools

import pytest

from screening.services.skill_normalizer import SkillNormalizer


@pytest.fixture
def normalizer():
    return SkillNormalizer()


@pytest.mark.parametrize("skills", list(itertools.permutations(["JS", "Reactjs", "unknownSkill"])))
def test_synonyms_map_to_canonical_names_in_any_order(normalizer, skills):
    result = normalizer.normalize(list(skills))
    assert set(result) == {"javascript", "react", "unknownSkill"}
    assert len(result) == len(set(result))


def test_variants_collapse_into_one_entry(normalizer):
    result = normalizer.normalize(["JavaScript", " js ", "ECMAScript", "React.js"])
    assert sorted(result) == ["javascript", "react"]


def test_unknown_tokens_keep_casing_and_drop_blanks(normalizer):
    assert normalizer.normalize(["  Haskell ", "", "   ", "None", "Haskell"]) == ["Haskell"]


def test_custom_table_first_canonical_wins():
    normalizer = SkillNormalizer({"frontend": ["react"], "react": ["reactjs"]})
    assert normalizer.canonical("React") == "frontend"
    assert normalizer.canonical("reactjs") == "react"
    assert normalizer.canonical("vue") is None
