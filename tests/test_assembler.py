"""
Unit tests for the reaction response assembler.
"""

from isupipe.hydration.assembler import assemble_reactions, lookup_or_zero
from isupipe.hydration.schemas import Livestream, Theme, User
from isupipe.storage.models import ReactionModel


def _reaction(id, user_id=7, livestream_id=42, created_at=100, emoji='fire'):
    return ReactionModel(
        id=id,
        emoji_name=emoji,
        user_id=user_id,
        livestream_id=livestream_id,
        created_at=created_at
    )


USERS = {7: User(id=7, name='alice', theme=Theme(id=1, dark_mode=True), icon_hash='abc')}
LIVESTREAMS = {42: Livestream(id=42, title='Lo-fi beats', owner=User(id=8, name='bob'))}


class TestLookupOrZero:

    def test_hit(self):
        assert lookup_or_zero(USERS, 7, User).name == 'alice'

    def test_miss_returns_zero_value(self):
        assert lookup_or_zero(USERS, 99, User) == User()

    def test_zero_values_are_fresh_instances(self):
        first = lookup_or_zero({}, 1, Livestream)
        second = lookup_or_zero({}, 1, Livestream)

        first.tags.append(None)

        assert second.tags == []


class TestAssembleReactions:
    """Order-preserving, one-to-one, tolerant of misses."""

    def test_one_output_per_input_in_order(self):
        reactions = [_reaction(3, created_at=300), _reaction(1, created_at=100), _reaction(2, created_at=200)]

        result = assemble_reactions(reactions, USERS, LIVESTREAMS)

        assert [r.id for r in result] == [3, 1, 2]
        assert [r.created_at for r in result] == [300, 100, 200]

    def test_duplicate_references_share_entity(self):
        reactions = [_reaction(1), _reaction(2), _reaction(3)]

        result = assemble_reactions(reactions, USERS, LIVESTREAMS)

        assert len(result) == 3
        assert all(r.user.name == 'alice' for r in result)
        assert all(r.livestream.id == 42 for r in result)

    def test_missing_user_becomes_zero_user(self):
        """User 99 no longer exists: row kept, user zeroed."""
        result = assemble_reactions([_reaction(1, user_id=99)], USERS, LIVESTREAMS)

        assert len(result) == 1
        assert result[0].user == User()
        assert result[0].user.id == 0
        assert result[0].user.theme == Theme(id=0, dark_mode=False)
        assert result[0].livestream.id == 42

    def test_missing_livestream_becomes_zero_livestream(self):
        result = assemble_reactions([_reaction(1, livestream_id=404)], USERS, LIVESTREAMS)

        assert result[0].livestream == Livestream()
        assert result[0].livestream.owner == User()
        assert result[0].livestream.tags == []

    def test_empty_maps_keep_every_row(self):
        reactions = [_reaction(i) for i in range(1, 6)]

        result = assemble_reactions(reactions, {}, {})

        assert [r.id for r in result] == [1, 2, 3, 4, 5]

    def test_empty_input(self):
        assert assemble_reactions([], USERS, LIVESTREAMS) == []

    def test_payload_fields_copied(self):
        result = assemble_reactions([_reaction(101, emoji='fire', created_at=1234)], USERS, LIVESTREAMS)

        assert result[0].id == 101
        assert result[0].emoji_name == 'fire'
        assert result[0].created_at == 1234
