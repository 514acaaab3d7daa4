"""
Tests for duplicate detection.
"""

from mnemo.memory.deduplicator import MemoryDeduplicator
from tests.factories import CosineRetriever, FailingRetriever, build_settings, make_memory


def deduplicator(retriever_class=CosineRetriever) -> MemoryDeduplicator:
    config = build_settings()
    return MemoryDeduplicator(retriever_class(config), config)


class TestMemoryDeduplicator:

    def test_no_vector_is_never_duplicate(self, db_session, test_user):
        make_memory(db_session, test_user, "User likes pasta", embedding=[1.0, 0.0, 0.0])

        assert deduplicator().is_duplicate(db_session, test_user.id, None) is False

    def test_close_vector_is_duplicate(self, db_session, test_user):
        make_memory(db_session, test_user, "User likes pasta", embedding=[1.0, 0.0, 0.0])

        # distance ~0.005
        assert deduplicator().is_duplicate(db_session, test_user.id, [0.99, 0.1, 0.0]) is True

    def test_distant_vector_is_not_duplicate(self, db_session, test_user):
        make_memory(db_session, test_user, "User likes pasta", embedding=[1.0, 0.0, 0.0])

        # similarity 0.8, distance 0.2
        assert deduplicator().is_duplicate(db_session, test_user.id, [0.8, 0.6, 0.0]) is False

    def test_low_similarity_neighbour_is_not_duplicate(self, db_session, test_user):
        make_memory(db_session, test_user, "User likes pasta", embedding=[1.0, 0.0, 0.0])

        assert deduplicator().is_duplicate(db_session, test_user.id, [0.1, 0.0, 1.0]) is False

    def test_other_users_memories_ignored(self, db_session, test_user, other_user):
        make_memory(db_session, other_user, "User likes pasta", embedding=[1.0, 0.0, 0.0])

        assert deduplicator().is_duplicate(db_session, test_user.id, [1.0, 0.0, 0.0]) is False

    def test_lookup_failure_is_not_duplicate(self, db_session, test_user):
        result = deduplicator(FailingRetriever).is_duplicate(db_session, test_user.id, [1.0, 0.0, 0.0])

        assert result is False
