"""
pytest suite for sibling ordering.
"""

from training_architecture.models import Granularity, LevelGroup, Link
from training_architecture.order_resolver import OrderResolver


def _ranks(training_id, **ranks):
    return {
        "sort_orders": [
            {"training_id": training_id, "lu_id": int(k[1:]), "sort_order": v}
            for k, v in ranks.items()
        ]
    }


def _ids(groups):
    return [g.lu_id for g in groups]


class TestOneLevel:
    """Groups keyed by LU are sorted by their rank."""

    def test_ascending_ranks(self, make_store):
        store = make_store(_ranks(1, l5=3, l6=1, l7=2))
        groups = [LevelGroup(lu_id=i) for i in (5, 6, 7)]
        out = OrderResolver(store).order_siblings(1, Granularity.ONE_LEVEL, groups)
        assert _ids(out) == [6, 7, 5]

    def test_ties_keep_incoming_order(self, make_store):
        store = make_store(_ranks(1, l5=1, l6=1, l7=1))
        groups = [LevelGroup(lu_id=i) for i in (7, 5, 6)]
        out = OrderResolver(store).order_siblings(1, Granularity.ONE_LEVEL, groups)
        assert _ids(out) == [7, 5, 6]

    def test_missing_rank_defaults_to_zero(self, make_store):
        """Unranked siblings land in front, in their incoming order."""
        store = make_store(_ranks(1, l5=1, l6=1))
        groups = [LevelGroup(lu_id=i) for i in (5, 6, 7, 8)]
        out = OrderResolver(store).order_siblings(1, Granularity.ONE_LEVEL, groups)
        assert _ids(out) == [7, 8, 5, 6]

    def test_ranks_scoped_to_training(self, make_store):
        store = make_store(_ranks(2, l5=9))
        groups = [LevelGroup(lu_id=5), LevelGroup(lu_id=6)]
        out = OrderResolver(store).order_siblings(1, Granularity.ONE_LEVEL, groups)
        assert _ids(out) == [5, 6]

    def test_courses_travel_with_their_group(self, make_store):
        store = make_store(_ranks(1, l5=2, l6=1))
        groups = [LevelGroup(lu_id=5, courses=[50]), LevelGroup(lu_id=6, courses=[60])]
        out = OrderResolver(store).order_siblings(1, Granularity.ONE_LEVEL, groups)
        assert [g.courses for g in out] == [[60], [50]]


class TestTwoLevel:
    """Inner LUs are sorted inside each block, then blocks are sorted."""

    def test_inner_then_outer(self, make_store):
        store = make_store(_ranks(1, l1=2, l2=1, l11=2, l12=1, l21=1, l22=0))
        groups = [
            LevelGroup(lu_id=1, children=[LevelGroup(lu_id=11), LevelGroup(lu_id=12)]),
            LevelGroup(lu_id=2, children=[LevelGroup(lu_id=21), LevelGroup(lu_id=22)]),
        ]
        out = OrderResolver(store).order_siblings(1, Granularity.TWO_LEVEL, groups)
        assert _ids(out) == [2, 1]
        assert _ids(out[0].children) == [22, 21]
        assert _ids(out[1].children) == [12, 11]

    def test_input_groups_untouched(self, make_store):
        store = make_store(_ranks(1, l11=2, l12=1))
        block = LevelGroup(lu_id=1, children=[LevelGroup(lu_id=11), LevelGroup(lu_id=12)])
        OrderResolver(store).order_siblings(1, Granularity.TWO_LEVEL, [block])
        assert _ids(block.children) == [11, 12]

    def test_stable_at_both_levels(self, make_store):
        store = make_store({})
        groups = [
            LevelGroup(lu_id=3, children=[LevelGroup(lu_id=32), LevelGroup(lu_id=31)]),
            LevelGroup(lu_id=1),
        ]
        out = OrderResolver(store).order_siblings(1, Granularity.TWO_LEVEL, groups)
        assert _ids(out) == [3, 1]
        assert _ids(out[0].children) == [32, 31]


class TestSortLinks:
    def test_links_sorted_by_child_rank(self, make_store):
        store = make_store(_ranks(1, l22=2, l23=1))
        links = [
            Link(training_id=1, parent_lu_id=20, child_id=22, child_is_course=False),
            Link(training_id=1, parent_lu_id=20, child_id=23, child_is_course=False),
            Link(training_id=1, parent_lu_id=20, child_id=24, child_is_course=False),
        ]
        out = OrderResolver(store).sort_links(1, links)
        assert [l.child_id for l in out] == [24, 23, 22]
