"""Permanent idea storage."""

from ideagen.ideas.store import FileIdeaStore, IdeaStore, PostgresIdeaStore, get_idea_store, new_idea_id

__all__ = ["FileIdeaStore", "IdeaStore", "PostgresIdeaStore", "get_idea_store", "new_idea_id"]
