"""Unit tests for the join graph and token resolution."""

from __future__ import annotations

import pytest

from pagewise.core.exceptions import UnknownTokenError
from pagewise.core.query import ComposedQuery
from pagewise.core.query.join_graph import (
    Cardinality,
    EagerLoadStrategy,
    JoinGraph,
    TokenCache,
    split_token,
)
from tests.models import Article, Author, Revision


@pytest.mark.unit
class TestSplitToken:
    def test_root_field(self):
        assert split_token("title") == ("title", ())

    def test_nested(self):
        assert split_token("name@author@company") == ("name", ("author", "company"))

    @pytest.mark.parametrize("token", ["name@", "@author", "name@@company"])
    def test_empty_segments(self, token):
        with pytest.raises(UnknownTokenError):
            split_token(token)


@pytest.mark.unit
class TestJoinGraphBuild:
    """Tests for graph construction."""

    def test_tokens_join_their_associations(self):
        """Associations named by tokens are LEFT OUTER joined."""
        graph = JoinGraph.build(Article, tokens=["name@author"])

        node = graph.node(("author",))
        assert node.joined
        assert node.outer
        assert node.cardinality is Cardinality.ONE

    def test_explicit_inner_join_kept(self):
        """A token does not weaken an explicit inner join."""
        graph = JoinGraph.build(Article, joins=[(("author",), False)], tokens=["name@author"])

        assert not graph.node(("author",)).outer

    def test_nested_join_registers_prefixes(self):
        graph = JoinGraph.build(Article, joins=[(("comments", "author"), False)])

        comments, author = graph.joined_nodes()
        assert comments.path == ("comments",)
        assert comments.cardinality is Cardinality.MANY
        assert author.parent_index == comments.index

    def test_separate_eager_load_does_not_join(self):
        graph = JoinGraph.build(Article, eager_loads=[(("comments",), EagerLoadStrategy.SEPARATE)])

        assert not graph.node(("comments",)).joined
        assert graph.eager_load(("comments",)) is EagerLoadStrategy.SEPARATE
        assert graph.has_to_many_eager_loads

    def test_through_join_eager_load_joins_and_wins(self):
        """THROUGH_JOIN overrides SEPARATE on the same path."""
        graph = JoinGraph.build(
            Article,
            eager_loads=[
                (("author",), EagerLoadStrategy.SEPARATE),
                (("author",), EagerLoadStrategy.THROUGH_JOIN),
            ],
        )

        assert graph.node(("author",)).joined
        assert graph.eager_load(("author",)) is EagerLoadStrategy.THROUGH_JOIN
        assert graph.has_through_join_eager_loads

    def test_unknown_association(self):
        with pytest.raises(UnknownTokenError, match="no association 'editor'"):
            JoinGraph.build(Article, joins=[(("editor",), False)])

    def test_root_primary_key(self):
        assert JoinGraph.build(Article).root_primary_key() == ("id",)
        assert JoinGraph.build(Revision).root_primary_key() == ("article_id", "number")


@pytest.mark.unit
class TestResolve:
    """Tests for token resolution."""

    def test_root_field(self):
        resolved = JoinGraph.build(Article).resolve("title")

        assert resolved.entity is Article
        assert resolved.node is None

    def test_association_field_uses_alias(self):
        graph = JoinGraph.build(Article, tokens=["name@author"])

        resolved = graph.resolve("name@author")

        assert resolved.entity is graph.node(("author",)).alias
        assert resolved.node.target_model is Author

    def test_ambiguous_association(self):
        """``author`` reachable twice must be addressed by full path."""
        graph = JoinGraph.build(
            Article, joins=[(("author",), True), (("comments", "author"), True)]
        )

        with pytest.raises(UnknownTokenError, match="ambiguous"):
            graph.resolve("name@author")
        assert graph.resolve("name@comments@author").node.path == ("comments", "author")

    def test_unknown_field(self):
        with pytest.raises(UnknownTokenError, match="has no field 'subtitle'"):
            JoinGraph.build(Article).resolve("subtitle")

    def test_association_is_not_a_field(self):
        with pytest.raises(UnknownTokenError, match="is an association"):
            JoinGraph.build(Article).resolve("author")

    def test_unjoined_association(self):
        """Eager-loaded but not joined associations cannot be resolved."""
        graph = JoinGraph.build(Article, eager_loads=[(("author",), EagerLoadStrategy.SEPARATE)])

        with pytest.raises(UnknownTokenError, match="is not joined"):
            graph.resolve("name@author")

    def test_error_details(self):
        with pytest.raises(UnknownTokenError) as exc_info:
            JoinGraph.build(Article).resolve("subtitle")

        assert exc_info.value.details["token"] == "subtitle"

    def test_cache_memoizes_per_call(self):
        cache = TokenCache()
        graph = JoinGraph.build(Article, tokens=["name@author"], cache=cache)

        first = graph.resolve("name@author")
        second = graph.resolve("name@author")

        assert first is second
        assert (cache.hits, cache.misses, len(cache)) == (1, 1, 1)


@pytest.mark.unit
class TestLoaderOptions:
    """Tests for the immediate/deferred split of eager-loads."""

    def test_split_by_strategy(self):
        query = ComposedQuery(Article).preload("comments").preload_through_join("author")

        split = query.join_graph().loader_options()

        assert len(split.immediate) == 1
        assert len(split.deferred) == 1

    def test_only_leaves_produce_options(self):
        """``comments.author`` covers ``comments``."""
        query = ComposedQuery(Article).preload("comments").preload("comments.author")

        split = query.join_graph().loader_options()

        assert split.immediate == ()
        assert len(split.deferred) == 1

    def test_describe(self):
        graph = ComposedQuery(Article).join("comments").preload("author").join_graph()

        assert graph.describe() == "Article joins=[comments[many]] raw=0 eager=[author:separate]"
