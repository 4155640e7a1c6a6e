"""Unit tests for SubqueryPlanner: nesting decisions and name resolution."""

from __future__ import annotations

import pytest

from lazyql import table
from lazyql.compile.builder import QueryBuilder
from lazyql.compile.planner import ClauseSet, StarItem, SubquerySource, TableSource
from lazyql.compile.registry import DialectRegistry
from lazyql.errors import AmbiguousColumnError, UnresolvedColumnError
from lazyql.functions import col, count, mean
from lazyql.schema.operations import ProjectOp
from tests.fixtures import squash


def _plan(plan) -> ClauseSet:
    return QueryBuilder(DialectRegistry.create("ansi")).plan(plan.node)


def _depth(cs: ClauseSet) -> int:
    if isinstance(cs.source, SubquerySource):
        return 1 + _depth(cs.source.clause_set)
    return 1


# ---------------------------------------------------------------------------
# Folding
# ---------------------------------------------------------------------------


def test_base_table_passes_everything_through():
    cs = _plan(table("flights"))
    assert isinstance(cs.source, TableSource)
    assert len(cs.outputs) == 1
    assert isinstance(cs.outputs[0], StarItem)


def test_renames_and_filters_fold():
    plan = (
        table("flights")
        .project(a="dest", b="origin")
        .project(c="a")
        .filter(col("c") == "IAH")
    )
    cs = _plan(plan)
    assert _depth(cs) == 1
    assert cs.output_names == ["c"]
    assert len(cs.where) == 1


def test_filter_on_pass_through_of_derived_table_folds(flights):
    cs = _plan(flights.derive(gain=col("dep_delay") - col("arr_delay")).filter(col("dest") == "IAH"))
    assert _depth(cs) == 1


def test_computed_reference_wraps_once():
    plan = table("t").project(c2=col("c1") + 2).project(c3=col("c2") + 1)
    cs = _plan(plan)
    assert _depth(cs) == 2
    assert cs.source.alias == "q01"


def test_aggregate_folds_with_preceding_filter():
    plan = table("flights").filter(col("arr_delay") > 0).aggregate("dest", delay=mean("arr_delay"))
    cs = _plan(plan)
    assert _depth(cs) == 1
    assert cs.aggregated
    assert len(cs.group_by) == 1


def test_sort_after_aggregate_folds():
    cs = _plan(table("flights").aggregate("dest", n=count()).sort(col("n").desc()))
    assert _depth(cs) == 1
    assert cs.order_by[0].direction == "DESC"


def test_aggregate_after_limit_wraps():
    cs = _plan(table("flights").limit(100).aggregate(n=count()))
    assert _depth(cs) == 2
    assert cs.source.clause_set.limit == 100


def test_project_over_distinct_wraps():
    plan = table("flights").distinct("dest").project(d=col("dest").lower())
    cs = _plan(plan)
    assert _depth(cs) == 2
    assert cs.source.clause_set.distinct


def test_sort_replaces_earlier_sort():
    cs = _plan(table("flights").sort("dest").sort(col("carrier").desc()))
    assert len(cs.order_by) == 1
    assert cs.order_by[0].expr.name == "carrier"


# ---------------------------------------------------------------------------
# derive
# ---------------------------------------------------------------------------


def test_derive_referencing_new_name_is_split():
    plan = table("t").derive(a=col("x") + 1, b=col("a") * 2)
    assert isinstance(plan.node, ProjectOp)
    assert isinstance(plan.node.source, ProjectOp)
    assert [o.name for o in plan.node.outputs] == ["b"]
    assert squash(plan.render()) == (
        "SELECT *, a * 2 AS b FROM ( SELECT *, x + 1 AS a FROM t ) AS q01"
    )


def test_independent_derive_is_one_projection():
    plan = table("t").derive(a=col("x") + 1, b=col("y") * 2)
    assert isinstance(plan.node, ProjectOp)
    assert not isinstance(plan.node.source, ProjectOp)
    assert squash(plan.render()) == "SELECT *, x + 1 AS a, y * 2 AS b FROM t"


def test_derive_cannot_replace_unknown_column():
    with pytest.raises(AmbiguousColumnError):
        table("flights").derive(distance=col("distance") * 2).render()


# ---------------------------------------------------------------------------
# Resolution errors
# ---------------------------------------------------------------------------


def test_unresolved_column_lists_visible_names():
    plan = table("t").project("a", "b").filter(col("c") > 1)
    with pytest.raises(UnresolvedColumnError) as exc_info:
        _plan(plan)
    err = exc_info.value
    assert err.column == "c"
    assert err.details["available"] == ["a", "b"]
    assert err.to_error_response()["error"] == "UNRESOLVED_COLUMN"


def test_unknown_qualifier_is_unresolved(flights):
    with pytest.raises(UnresolvedColumnError):
        _plan(flights.filter(col("planes.year") > 2000))


def test_table_qualifier_survives_wrapping():
    plan = (
        table("flights")
        .derive(gain=col("dep_delay") - col("arr_delay"))
        .filter(col("gain") > 0)
        .filter(col("flights.dest") == "IAH")
    )
    assert squash(plan.render()).endswith("WHERE (gain > 0) AND (dest = 'IAH')")
