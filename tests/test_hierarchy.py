"""
pytest suite for hierarchy resolution: summary leaves, pruning, ordering,
naming and cycle detection.
"""

from collections import Counter

import pytest

from training_architecture.errors import CyclicHierarchyError
from training_architecture.hierarchy import HierarchyResolver
from training_architecture.link_store import SqliteLinkStore
from training_architecture.membership import AdjacencyCache
from training_architecture.presenter import TextPresenter


# =========================================================================
# Helpers
# =========================================================================


def _payload(training_id, edges, granularity=1, lus=(), courses=(), ranks=None):
    """Build an inline payload; *edges* are ``(parent, child, is_course)``."""
    return {
        "trainings": [{"id": training_id, "fullname": f"T{training_id}",
                       "granularity": granularity}],
        "learning_units": [
            {"id": i, "fullname": f"LU {i}", "shortname": f"lu{i}"} for i in lus
        ],
        "courses": [{"id": c, "shortname": f"C{c}"} for c in courses],
        "links": [
            {"training_id": training_id, "parent_lu_id": p, "child_id": c,
             "child_is_course": is_course}
            for p, c, is_course in edges
        ],
        "sort_orders": [
            {"training_id": training_id, "lu_id": lu, "sort_order": r}
            for lu, r in (ranks or {}).items()
        ],
    }


def _resolver(store):
    return HierarchyResolver(store, TextPresenter(), indent_step=20)


# =========================================================================
# Test: Summary leaves
# =========================================================================


class TestSummaryLeaves:
    """An LU with courses and no child LU is a summary leaf."""

    def test_single_lu_with_two_courses(self, sample_store):
        """L1 with C1, C2 and no ranks → one summary node listing both."""
        node = _resolver(sample_store).resolve(1, 10)
        assert node is not None
        assert node.no_header is True
        assert node.courses == [101, 102]
        assert node.children == []
        assert node.course_list.index("C101") < node.course_list.index("C102")

    def test_summary_leaf_indents(self, sample_store):
        node = _resolver(sample_store).resolve(1, 10, depth=2)
        assert node.indent == 40
        assert node.indent_courses == 60

    def test_node_with_branch_is_never_a_summary(self, make_store):
        store = make_store(_payload(
            1, [(1, 2, False), (1, 500, True), (2, 501, True)],
            lus=(1, 2), courses=(500, 501),
        ))
        node = _resolver(store).resolve(1, 1)
        assert node.no_header is False
        assert node.courses == [500]
        assert [c.id for c in node.children] == [2]
        assert node.children[0].no_header is True


# =========================================================================
# Test: Pruning
# =========================================================================


class TestPruning:
    """Empty branches resolve to None and vanish from their parent."""

    def test_dangling_child_yields_none(self, make_store):
        """L2 → L3 where L3 has no links at all → L2 is pruned."""
        store = make_store(_payload(5, [(50, 51, False)], lus=(50, 51)))
        assert _resolver(store).resolve(5, 50) is None

    def test_lu_without_links_yields_none(self, make_store):
        store = make_store(_payload(5, [], lus=(50,)))
        assert _resolver(store).resolve(5, 50) is None

    def test_empty_branch_removed_from_parent(self, make_store):
        store = make_store(_payload(
            1,
            [(1, 2, False), (1, 4, False), (2, 3, False), (4, 400, True)],
            lus=(1, 2, 3, 4), courses=(400,),
        ))
        node = _resolver(store).resolve(1, 1)
        assert [c.id for c in node.children] == [4]

    def test_parent_of_only_empty_branches_is_pruned(self, make_store):
        store = make_store(_payload(
            1, [(1, 2, False), (2, 3, False)], lus=(1, 2, 3),
        ))
        assert _resolver(store).resolve(1, 1) is None


# =========================================================================
# Test: Ordering
# =========================================================================


class TestChildOrdering:
    def test_pure_lu_fan_out_is_ranked(self, sample_store):
        """Block A's LUs follow their ranks (LAW=1 before ETH=2)."""
        node = _resolver(sample_store).resolve(2, 20)
        assert [c.id for c in node.children] == [23, 22]

    def test_mixed_fan_out_keeps_store_order(self, make_store):
        store = make_store(_payload(
            1,
            [(1, 3, False), (1, 100, True), (1, 2, False),
             (2, 200, True), (3, 300, True)],
            lus=(1, 2, 3), courses=(100, 200, 300), ranks={2: 1, 3: 2},
        ))
        node = _resolver(store).resolve(1, 1)
        assert [c.id for c in node.children] == [3, 2]


# =========================================================================
# Test: Naming & context
# =========================================================================


class TestDisplayContext:
    def test_dashboard_uses_fullname_and_description(self, sample_store):
        node = _resolver(sample_store).resolve(1, 10, context="dashboard")
        assert node.name == "Foundations of Care"
        assert node.description == "Core nursing skills."
        assert node.is_course_context is False

    def test_course_uses_shortname_without_description(self, sample_store):
        node = _resolver(sample_store).resolve(1, 10, context="course")
        assert node.name == "FND"
        assert node.description is None
        assert node.is_course_context is True

    def test_open_when_current_course_listed(self, sample_store):
        resolver = _resolver(sample_store)
        assert resolver.resolve(1, 10, "course", current_course_id=101).open is True
        assert resolver.resolve(1, 10, "course", current_course_id=103).open is False
        assert resolver.resolve(1, 10, "dashboard", current_course_id=101).open is False

    def test_missing_metadata_gives_blank_name(self, make_store):
        store = make_store(_payload(1, [(7, 700, True)], courses=(700,)))
        node = _resolver(store).resolve(1, 7)
        assert node.name == ""
        assert node.courses == [700]

    def test_courses_without_metadata_left_out_of_list(self, make_store):
        store = make_store(_payload(1, [(7, 700, True), (7, 701, True)],
                                    lus=(7,), courses=(700,)))
        node = _resolver(store).resolve(1, 7)
        assert node.courses == [700, 701]
        assert "C700" in node.course_list
        assert "701" not in node.course_list

    def test_child_depth_and_indent(self, sample_store):
        node = _resolver(sample_store).resolve(2, 20)
        assert node.depth == 0 and node.indent == 0
        child = node.children[0]
        assert child.depth == 1
        assert child.indent == 20
        assert child.indent_courses == 40


# =========================================================================
# Test: Whole training
# =========================================================================


class TestResolveTraining:
    def test_all_roots_resolved(self, sample_store):
        training = sample_store.get_training(2)
        nodes = _resolver(sample_store).resolve_training(training)
        assert [n.id for n in nodes] == [20, 21]
        assert [c.id for c in nodes[1].children] == [24]

    def test_training_without_links(self, sample_store):
        training = sample_store.get_training(4)
        assert _resolver(sample_store).resolve_training(training) == []


# =========================================================================
# Test: Cycles
# =========================================================================


class TestCycles:
    """Looping links raise instead of recursing forever."""

    def test_two_node_cycle(self, make_store):
        store = make_store(_payload(6, [(60, 61, False), (61, 60, False)], lus=(60, 61)))
        with pytest.raises(CyclicHierarchyError) as exc_info:
            _resolver(store).resolve(6, 60)
        assert exc_info.value.training_id == 6
        assert exc_info.value.cycle == [60, 61, 60]

    def test_self_loop(self, make_store):
        store = make_store(_payload(6, [(60, 60, False)], lus=(60,)))
        with pytest.raises(CyclicHierarchyError) as exc_info:
            _resolver(store).resolve(6, 60)
        assert exc_info.value.cycle == [60, 60]

    def test_cycle_below_root(self, sample_store):
        with pytest.raises(CyclicHierarchyError) as exc_info:
            _resolver(sample_store).resolve(3, 32)
        assert exc_info.value.cycle == [30, 31, 30]

    def test_shared_child_is_not_a_cycle(self, make_store):
        """A diamond resolves; the shared LU appears under both parents."""
        store = make_store(_payload(
            1,
            [(1, 2, False), (1, 3, False), (2, 4, False), (3, 4, False),
             (4, 400, True)],
            lus=(1, 2, 3, 4), courses=(400,),
        ))
        node = _resolver(store).resolve(1, 1)
        assert [c.children[0].id for c in node.children] == [4, 4]

    def test_cycle_no_root_leads_to(self, make_store):
        """L1 ↔ L2 are both children, so the training has no root at all."""
        store = make_store(_payload(
            7, [(1, 2, False), (2, 1, False), (1, 100, True)],
            lus=(1, 2), courses=(100,),
        ))
        training = store.get_training(7)
        with pytest.raises(CyclicHierarchyError) as exc_info:
            _resolver(store).resolve_training(training)
        assert exc_info.value.training_id == 7
        assert set(exc_info.value.cycle) == {1, 2}


# =========================================================================
# Test: Link reads
# =========================================================================


class _CountingStore(SqliteLinkStore):
    def __init__(self, conn):
        super().__init__(conn)
        self.calls = Counter()

    def get_all_links(self, training_id):
        self.calls["get_all_links"] += 1
        return super().get_all_links(training_id)

    def get_child_links(self, training_id, parent_lu_id):
        self.calls["get_child_links"] += 1
        return super().get_child_links(training_id, parent_lu_id)

    def has_child_links(self, training_id, lu_id):
        self.calls["has_child_links"] += 1
        return super().has_child_links(training_id, lu_id)


class TestLinkReads:
    """Links are read once per training, not once per node."""

    def test_whole_training_loads_links_once(self, sample_store):
        store = _CountingStore(sample_store.conn)
        nodes = _resolver(store).resolve_training(store.get_training(2))
        assert [n.id for n in nodes] == [20, 21]
        assert store.calls["get_all_links"] == 1
        assert store.calls["get_child_links"] == 0
        assert store.calls["has_child_links"] == 0

    def test_shared_adjacency_between_roots(self, sample_store):
        store = _CountingStore(sample_store.conn)
        adjacency = AdjacencyCache(store, 2)
        resolver = _resolver(store)
        resolver.resolve(2, 20, adjacency=adjacency)
        resolver.resolve(2, 21, adjacency=adjacency)
        assert adjacency.loads == 1
        assert store.calls["get_all_links"] == 1
