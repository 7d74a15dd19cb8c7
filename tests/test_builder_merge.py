import pytest

from udedit.builder import HeadPolicy, MergePolicy, SentenceBuilder
from udedit.doc import Sentence, SentenceValidationResult
from udedit.errors import BuilderError
from udedit.id_map import COMPOUND_SLOT, TokenIdMap
from udedit.tokens import UPOS, CompoundToken, EmptyToken, EnhancedDep, Feature, NominalToken, Relation


def builder_for(*tokens):
    return SentenceBuilder.from_sentence(Sentence(tokens=list(tokens)))


def deps_of(token):
    return [str(dep) for dep in token.deps or ()]


def assert_consistent(builder):
    assert list(builder.id_map) == list(TokenIdMap.from_tokens(builder.tokens))


def test_merge_this_is_a_book():
    builder = builder_for(
        NominalToken("This", lemma="this", upos="DET", head=4, deprel="det"),
        NominalToken("is", lemma="be", upos="VERB", head=0, deprel="root"),
        NominalToken("a", lemma="a", upos="PART", head=4, deprel="det"),
        NominalToken("book", lemma="book", upos="NOUN", head=2, deprel="obj"),
    )
    sentence = builder.merge(1, 2).build()
    assert [token.form for token in sentence.tokens] == ["This", "is a", "book"]
    assert [token.upos for token in sentence.tokens] == [UPOS.DET, UPOS.VERB, UPOS.NOUN]
    assert sentence.tokens[1].lemma == "be a"
    assert [token.head for token in sentence.tokens] == [3, 0, 2]
    assert sentence.tokens[1].deprel == Relation("root")
    assert builder.id_map == [1, 2, 3]
    assert sentence.validate() is SentenceValidationResult.OK


def test_merge_respects_space_after():
    builder = builder_for(
        NominalToken("can", lemma="can", misc=["SpaceAfter=No"]),
        NominalToken("not", lemma="not"),
    )
    builder.merge(0, 1)
    merged = builder.tokens[0]
    assert merged.form == "cannot"
    assert merged.lemma == "cannot"
    assert merged.misc is None

    builder = builder_for(
        NominalToken("ice", misc=["Gloss=ice"]),
        NominalToken("cream", misc=["Gloss=cream", "SpaceAfter=No"]),
    )
    builder.merge(0, 1)
    merged = builder.tokens[0]
    assert merged.form == "ice cream"
    assert merged.misc == ["Gloss=ice", "Gloss=cream", "SpaceAfter=No"]


def test_merge_promotes_root_and_repoints_heads():
    builder = builder_for(
        NominalToken("A", head=2, deprel="nsubj"),
        NominalToken("B", head=0, deprel="root"),
        NominalToken("C", head=2, deprel="obj"),
        NominalToken("D", head=3, deprel="amod"),
    )
    builder.merge(1, 2)
    assert [token.form for token in builder.tokens] == ["A", "B C", "D"]
    assert [token.head for token in builder.tokens] == [2, 0, 2]
    assert builder.tokens[1].deprel == Relation("root")
    assert_consistent(builder)


def test_merge_root_in_second_token():
    builder = builder_for(
        NominalToken("A", head=2, deprel="amod"),
        NominalToken("B", head=0, deprel="root"),
        NominalToken("C", head=2, deprel="punct"),
    )
    builder.merge(0, 1)
    assert builder.tokens[0].head_rel == (0, Relation("root"))
    assert builder.tokens[1].head == 1


def test_merge_with_remove_policy_drops_references():
    builder = builder_for(
        NominalToken("A", head=2, deprel="nsubj"),
        NominalToken("B", head=0, deprel="root"),
        NominalToken("C", head=2, deprel="obj"),
        NominalToken("D", head=3, deprel="amod"),
    )
    builder.merge(1, 2, MergePolicy(head_policy=HeadPolicy.REMOVE))
    a, bc, d = builder.tokens
    assert a.head_rel == (None, None)
    assert bc.head_rel == (0, Relation("root"))
    assert d.head_rel == (None, None)


def test_merge_rewrites_deps_and_filters_self_loops():
    builder = builder_for(
        NominalToken("A", deps=[((2,), "nsubj")]),
        NominalToken("B", head=0, deprel="root", deps=[((0,), "root")]),
        NominalToken("C", deps=[((2,), "obj"), ((1,), "dep")]),
        NominalToken("D", deps=[((3,), "amod")]),
    )
    builder.merge(1, 2)
    a, bc, d = builder.tokens
    assert deps_of(a) == ["2:nsubj"]
    assert deps_of(bc) == ["0:root", "1:dep"]
    assert deps_of(d) == ["2:amod"]


def test_merge_drops_empty_component_inside_range():
    builder = builder_for(
        NominalToken("A", deps=[((2, 1), "nsubj")]),
        NominalToken("B"),
        EmptyToken(form="e", deps=[((2,), "orphan")]),
        NominalToken("C", deps=[((2, 1), "nsubj")]),
        NominalToken("D", deps=[((3,), "x")]),
    )
    builder.merge(1, 3)
    assert [token.form for token in builder.tokens] == ["A", "B C", "D"]
    a, bc, d = builder.tokens
    assert deps_of(a) == ["2:nsubj"]
    assert bc.deps is None
    assert deps_of(d) == ["2:x"]
    assert builder.id_map == [1, 2, 3]


def test_merge_keeps_empties_after_range():
    builder = builder_for(
        NominalToken("A"),
        NominalToken("B"),
        NominalToken("C"),
        EmptyToken(form="e", deps=[((3,), "x")]),
        NominalToken("D", deps=[((3, 1), "nsubj")]),
    )
    builder.merge(1, 2)
    assert builder.id_map == [1, 2, (2, 1), 3]
    assert deps_of(builder.tokens[2]) == ["2:x"]
    assert deps_of(builder.tokens[3]) == ["2.1:nsubj"]


def test_merge_unions_feats_and_deps():
    builder = builder_for(
        NominalToken("A", feats=["Number=Sing", "Case=Nom"], deps=[((3,), "obj")]),
        NominalToken("B", feats=["Number=Sing", "Gender=Fem"], deps=[((3,), "obj"), ((0,), "root")]),
        NominalToken("C"),
    )
    builder.merge(0, 1)
    merged = builder.tokens[0]
    assert merged.feats == [Feature("Case", ("Nom",)), Feature("Gender", ("Fem",)), Feature("Number", ("Sing",))]
    assert deps_of(merged) == ["0:root", "2:obj"]


def test_merge_shrinks_covering_compound():
    builder = builder_for(
        CompoundToken(1, 3, "xyz"),
        NominalToken("x"),
        NominalToken("y"),
        NominalToken("z"),
        NominalToken("w"),
    )
    builder.merge(1, 2)
    assert builder.tokens[0].id == (1, 2)
    assert builder.build().validate() is SentenceValidationResult.OK


def test_merge_clamps_compound_end_to_merged_id():
    builder = builder_for(
        CompoundToken(1, 2, "xy"),
        NominalToken("x"),
        NominalToken("y"),
        NominalToken("z"),
    )
    builder.merge(2, 3)
    assert builder.tokens[0].id == (1, 2)
    assert [token.form for token in builder.tokens[1:]] == ["x", "y z"]
    assert builder.build().validate() is SentenceValidationResult.OK


def test_merge_drops_collapsed_compound_and_shifts_later_ones():
    builder = builder_for(
        NominalToken("a"),
        CompoundToken(2, 3, "bc"),
        NominalToken("b", misc=["SpaceAfter=No"]),
        NominalToken("c"),
        NominalToken("d"),
        CompoundToken(5, 6, "ef"),
        NominalToken("e"),
        NominalToken("f"),
    )
    builder.merge(2, 3)
    forms = [token.form for token in builder.tokens]
    assert forms == ["a", "bc", "d", "ef", "e", "f"]
    assert builder.tokens[3].id == (4, 5)
    assert builder.id_map == [1, 2, 3, COMPOUND_SLOT, 4, 5]
    assert builder.build().validate() is SentenceValidationResult.OK


def test_merge_empty_tokens():
    builder = builder_for(
        NominalToken("A"),
        EmptyToken(form="x", deps=[((1,), "a")]),
        EmptyToken(form="y", deps=[((1,), "b"), ((1, 1), "dep")]),
        EmptyToken(form="z", deps=[((1, 2), "c")]),
        NominalToken("B", deps=[((1, 3), "d"), ((1, 1), "e")]),
    )
    builder.merge(1, 2)
    a, xy, z, b = builder.tokens
    assert xy.form == "x y"
    assert deps_of(xy) == ["1:a", "1:b"]
    assert deps_of(z) == ["1.1:c"]
    assert deps_of(b) == ["1.1:e", "1.2:d"]
    assert builder.id_map == [1, (1, 1), (1, 2), 2]
    assert builder.build().validate() is SentenceValidationResult.OK


def test_merge_empty_tokens_with_remove_policy():
    builder = builder_for(
        NominalToken("A"),
        EmptyToken(form="x", deps=[((1,), "a")]),
        EmptyToken(form="y", deps=[((1,), "b")]),
        EmptyToken(form="z", deps=[((1,), "c")]),
        NominalToken("B", deps=[((1, 3), "d"), ((1, 2), "e")]),
    )
    builder.merge(1, 2, MergePolicy(head_policy=HeadPolicy.REMOVE))
    assert deps_of(builder.tokens[-1]) == ["1.2:d"]


def test_merge_with_custom_policy():
    policy = MergePolicy(form=lambda tokens: "".join(token.form for token in tokens), upos=lambda tokens: "NOUN")
    builder = builder_for(NominalToken("ab", upos="ADJ"), NominalToken("cd", upos="ADJ"))
    builder.merge(0, 1, policy)
    assert builder.tokens[0].form == "abcd"
    assert builder.tokens[0].upos is UPOS.NOUN


def test_merge_preconditions():
    builder = builder_for(
        CompoundToken(1, 2, "ab"),
        NominalToken("a"),
        NominalToken("b"),
        EmptyToken(deps=[EnhancedDep((1,), "nmod")]),
        CompoundToken(3, 4, "cd"),
        NominalToken("c"),
        NominalToken("d"),
    )
    with pytest.raises(BuilderError):
        builder.merge(2, 1)
    with pytest.raises(IndexError):
        builder.merge(1, 7)
    with pytest.raises(BuilderError, match="different types"):
        builder.merge(1, 3)
    with pytest.raises(BuilderError, match="Compound"):
        builder.merge(0, 4)
    assert len(builder.tokens) == 7


def test_merge_empty_range_must_hold_only_empties():
    builder = builder_for(
        NominalToken("A"),
        EmptyToken(deps=[((1,), "a")]),
        NominalToken("B"),
        EmptyToken(deps=[((2,), "b")]),
    )
    with pytest.raises(BuilderError):
        builder.merge(1, 3)
