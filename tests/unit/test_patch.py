"""Tests for patch simulation."""

from __future__ import annotations

import pytest

from changeaudit.models.fields import ArrayKind, FieldSpec
from changeaudit.tracking.engine import diff
from changeaudit.tracking.patch import apply_patch, simulate
from changeaudit.tracking.paths import MISSING

_ITEMS = FieldSpec(path="items", array_kind=ArrayKind.KEYED_OBJECT_LIST, array_key="sku")


# ---------------------------------------------------------------------------
# Assignment operators
# ---------------------------------------------------------------------------


class TestAssignment:
    def test_set(self) -> None:
        assert simulate({"$set": {"status": "done"}}, {"status": "pending"}, ["status"]) == {"status": "done"}

    def test_set_beats_direct_assignment(self) -> None:
        patch = {"status": "direct", "$set": {"status": "set"}}
        assert simulate(patch, {}, ["status"]) == {"status": "set"}

    def test_set_on_insert_beats_set(self) -> None:
        patch = {"$set": {"kind": "a"}, "$setOnInsert": {"kind": "b"}}
        assert simulate(patch, {}, ["kind"]) == {"kind": "b"}

    def test_unset_wins_and_gives_missing(self) -> None:
        patch = {"$set": {"note": "x"}, "$unset": {"note": ""}}
        assert simulate(patch, {"note": "old"}, ["note"]) == {"note": MISSING}

    def test_untracked_assignments_are_kept(self) -> None:
        """Soft-delete flags are rarely tracked but must show up in the overlay."""
        assert simulate({"$set": {"deleted": True}}, {}, ["status"]) == {"deleted": True}

    def test_untouched_tracked_fields_are_absent(self) -> None:
        assert simulate({"$set": {"a": 1}}, {"b": 2}, ["b"]) == {"a": 1}

    def test_empty_patch(self) -> None:
        assert simulate(None, {"a": 1}, ["a"]) == {}
        assert simulate({}, {"a": 1}, ["a"]) == {}


# ---------------------------------------------------------------------------
# Array operators
# ---------------------------------------------------------------------------


class TestArrayOperators:
    def test_add_to_set_each_skips_existing(self) -> None:
        patch = {"$addToSet": {"tags": {"$each": ["a", "b"]}}}
        assert simulate(patch, {"tags": ["a"]}, ["tags"]) == {"tags": ["a", "b"]}

    def test_add_to_set_single_value(self) -> None:
        assert simulate({"$addToSet": {"tags": "a"}}, {"tags": ["a"]}, ["tags"]) == {"tags": ["a"]}

    def test_add_to_set_keyed_skips_known_keys_and_non_mappings(self) -> None:
        patch = {"$addToSet": {"items": {"$each": [{"sku": "A", "qty": 9}, {"sku": "B"}, "junk"]}}}
        result = simulate(patch, {"items": [{"sku": "A", "qty": 1}]}, [_ITEMS])
        assert result == {"items": [{"sku": "A", "qty": 1}, {"sku": "B"}]}

    def test_push_each(self) -> None:
        patch = {"$push": {"tags": {"$each": ["a", "c"]}}}
        assert simulate(patch, {"tags": ["a"]}, ["tags"]) == {"tags": ["a", "a", "c"]}

    def test_push_onto_missing_field(self) -> None:
        assert simulate({"$push": {"tags": "x"}}, {}, ["tags"]) == {"tags": ["x"]}

    def test_pull_scalar(self) -> None:
        assert simulate({"$pull": {"tags": "a"}}, {"tags": ["a", "b", "a"]}, ["tags"]) == {"tags": ["b"]}

    def test_pull_query_matches_every_key(self) -> None:
        before = {"items": [{"sku": "A", "qty": 1}, {"sku": "B", "qty": 1}, {"sku": "A", "qty": 2}]}
        result = simulate({"$pull": {"items": {"sku": "A", "qty": 1}}}, before, [_ITEMS])
        assert result == {"items": [{"sku": "B", "qty": 1}, {"sku": "A", "qty": 2}]}

    def test_pull_all(self) -> None:
        assert simulate({"$pullAll": {"tags": ["a", "c"]}}, {"tags": ["a", "b", "c"]}, ["tags"]) == {"tags": ["b"]}

    @pytest.mark.parametrize(
        ("operand", "expected"),
        [(1, [1, 2]), (-1, [2, 3]), (2, [1, 2, 3])],
    )
    def test_pop(self, operand: int, expected: list[int]) -> None:
        assert simulate({"$pop": {"n": operand}}, {"n": [1, 2, 3]}, ["n"]) == {"n": expected}

    def test_operators_chain_on_the_working_value(self) -> None:
        patch = {"$set": {"tags": ["z"]}, "$push": {"tags": "c"}, "$pull": {"tags": "z"}}
        assert simulate(patch, {"tags": ["a"]}, ["tags"]) == {"tags": ["c"]}

    def test_before_document_is_not_mutated(self) -> None:
        before = {"tags": ["a"]}
        simulate({"$push": {"tags": "b"}}, before, ["tags"])
        assert before == {"tags": ["a"]}


# ---------------------------------------------------------------------------
# Numeric operators
# ---------------------------------------------------------------------------


class TestNumericOperators:
    def test_inc(self) -> None:
        assert simulate({"$inc": {"n": 3}}, {"n": 2}, ["n"]) == {"n": 5}

    def test_inc_missing_counts_as_zero(self) -> None:
        assert simulate({"$inc": {"n": 3}}, {}, ["n"]) == {"n": 3}
        assert simulate({"$inc": {"n": 3}}, {"n": "x"}, ["n"]) == {"n": 3}

    def test_inc_non_numeric_operand_is_ignored(self) -> None:
        assert simulate({"$inc": {"n": "3"}}, {"n": 2}, ["n"]) == {"n": 2}

    def test_mul(self) -> None:
        assert simulate({"$mul": {"n": 3}}, {"n": 2}, ["n"]) == {"n": 6}
        assert simulate({"$mul": {"n": 3}}, {}, ["n"]) == {"n": 0}

    def test_inc_then_mul(self) -> None:
        assert simulate({"$inc": {"n": 1}, "$mul": {"n": 10}}, {"n": 1}, ["n"]) == {"n": 20}

    def test_min_and_max(self) -> None:
        assert simulate({"$min": {"n": 3}}, {"n": 5}, ["n"]) == {"n": 3}
        assert simulate({"$min": {"n": 9}}, {"n": 5}, ["n"]) == {"n": 5}
        assert simulate({"$max": {"n": 9}}, {"n": 5}, ["n"]) == {"n": 9}

    def test_min_missing_current_takes_operand(self) -> None:
        assert simulate({"$min": {"n": 3}}, {}, ["n"]) == {"n": 3}
        assert simulate({"$max": {"n": 3}}, {"n": None}, ["n"]) == {"n": 3}

    def test_incomparable_current_takes_operand(self) -> None:
        assert simulate({"$max": {"n": 3}}, {"n": "x"}, ["n"]) == {"n": 3}

    def test_dotted_tracked_path(self) -> None:
        result = apply_patch({"stats": {"views": 1}}, {"$inc": {"stats.views": 1}}, ["stats.views"])
        assert diff({"stats": {"views": 1}}, result, [FieldSpec(path="stats.views")])[0].to_value == "2"


# ---------------------------------------------------------------------------
# apply_patch
# ---------------------------------------------------------------------------


class TestApplyPatch:
    def test_overlay(self) -> None:
        before = {"status": "pending", "owner": "ada"}
        assert apply_patch(before, {"$set": {"status": "done"}}, ["status"]) == {"status": "done", "owner": "ada"}
        assert before == {"status": "pending", "owner": "ada"}

    def test_no_before_document(self) -> None:
        assert apply_patch(None, {"$set": {"status": "new"}}, ["status"]) == {"status": "new"}

    def test_composes_with_diff(self) -> None:
        specs = [FieldSpec(path="status")]
        before = {"status": "pending"}
        simulated = diff(before, apply_patch(before, {"$set": {"status": "done"}}, specs), specs)
        direct = diff(before, {"status": "done"}, specs)
        assert simulated == direct
        assert len(direct) == 1

    def test_unset_diffs_as_remove(self) -> None:
        specs = [FieldSpec(path="note")]
        before = {"note": "hi"}
        [record] = diff(before, apply_patch(before, {"$unset": {"note": 1}}, specs), specs)
        assert (record.kind.value, record.from_value, record.to_value) == ("remove", "hi", None)
