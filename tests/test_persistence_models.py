"""Tests for article_ingest.modules.persistence.models and config.database modules."""

from article_ingest.config import database
from article_ingest.modules.persistence.models import Article, Feed


class TestModels:
    def test_feed_columns(self) -> None:
        assert set(Feed.__table__.columns.keys()) == {
            "id",
            "name",
            "link",
            "created_at",
            "updated_at",
        }

    def test_article_columns_mirror_metadata(self) -> None:
        assert set(Article.__table__.columns.keys()) == {
            "id",
            "feed_id",
            "link",
            "title",
            "site_name",
            "published_at",
            "readable",
            "excerpt",
            "cover_image",
            "author",
            "created_at",
            "updated_at",
        }

    def test_links_are_unique(self) -> None:
        assert Feed.__table__.c.link.unique is True
        assert Article.__table__.c.link.unique is True


class TestDatabase:
    def test_exposes_engine_and_session_factory_only(self) -> None:
        public = {name for name in vars(database) if not name.startswith("_")}

        assert {"Base", "engine", "async_session"} <= public
        assert not any(callable(getattr(database, name)) and name.startswith("get_") for name in public)

    def test_session_factory_is_bound_to_engine(self) -> None:
        assert database.async_session.kw["bind"] is database.engine
