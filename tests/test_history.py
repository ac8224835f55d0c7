import pytest

from chatroom.services.errors import StorageError
from chatroom.services.history import HistoryReconstructor
from chatroom.services.messages import MessageService


@pytest.fixture
def service(store):
    return MessageService(store)


class TestHistoryReconstructor:
    """Test history loading and enrichment on join"""

    def test_empty_history(self, store):
        assert HistoryReconstructor(store).load() == []

    def test_history_is_oldest_first(self, store, service, join_user):
        alice = join_user('alice')
        for text in ('one', 'two', 'three'):
            service.create_text(alice, text)

        history = HistoryReconstructor(store).load()

        assert [m['content'] for m in history] == ['one', 'two', 'three']
        assert all(m['username'] == 'alice' for m in history)
        assert all(m['reactions'] == [] for m in history)

    def test_history_is_capped_to_most_recent(self, store, service, join_user):
        alice = join_user('alice')
        for i in range(55):
            service.create_text(alice, f'message {i}')

        history = HistoryReconstructor(store).load()

        assert len(history) == 50
        assert history[0]['content'] == 'message 5'
        assert history[-1]['content'] == 'message 54'

    def test_custom_limit(self, store, service, join_user):
        alice = join_user('alice')
        for i in range(5):
            service.create_text(alice, f'message {i}')

        history = HistoryReconstructor(store, limit=2).load()
        assert [m['content'] for m in history] == ['message 3', 'message 4']

    def test_limit_never_exceeds_fifty(self, store, service, join_user):
        alice = join_user('alice')
        for i in range(55):
            service.create_text(alice, f'message {i}')

        reconstructor = HistoryReconstructor(store, limit=500)
        assert reconstructor.limit == 50
        assert len(reconstructor.load()) == 50

    def test_deleted_messages_are_included(self, store, service, join_user):
        alice = join_user('alice')
        message = service.create_text(alice, 'regret')
        service.delete(alice, message['id'])

        history = HistoryReconstructor(store).load()
        assert len(history) == 1
        assert history[0]['is_deleted'] is True

    def test_replies_carry_parent_message(self, store, service, join_user):
        alice = join_user('alice')
        bob = join_user('bob')
        parent = service.create_text(alice, 'hello')
        service.create_reply(bob, 'hi', parent['id'])

        history = HistoryReconstructor(store).load()

        assert 'parentMessage' not in history[0]
        assert history[1]['parentMessage'] == {
            'id': parent['id'],
            'content': 'hello',
            'type': 'text',
            'user_id': alice.user_id,
            'username': 'alice',
        }

    def test_parent_outside_window_is_still_resolved(self, store, service, join_user):
        alice = join_user('alice')
        parent = service.create_text(alice, 'old news')
        service.create_text(alice, 'filler')
        service.create_reply(alice, 'about that', parent['id'])

        history = HistoryReconstructor(store, limit=1).load()

        assert len(history) == 1
        assert history[0]['parentMessage']['content'] == 'old news'

    def test_reactions_are_grouped_per_message(self, store, service, join_user):
        alice = join_user('alice')
        bob = join_user('bob')
        first = service.create_text(alice, 'first')
        second = service.create_text(alice, 'second')
        service.toggle_reaction(alice, first['id'], '👍')
        service.toggle_reaction(bob, first['id'], '❤️')
        service.toggle_reaction(bob, second['id'], '🎉')

        history = HistoryReconstructor(store).load()

        assert [(r['username'], r['emoji']) for r in history[0]['reactions']] == [
            ('alice', '👍'), ('bob', '❤️')
        ]
        assert [(r['username'], r['emoji']) for r in history[1]['reactions']] == [('bob', '🎉')]

    def test_reaction_failure_degrades_to_empty_lists(self, store, service, join_user, monkeypatch):
        alice = join_user('alice')
        message = service.create_text(alice, 'hello')
        service.toggle_reaction(alice, message['id'], '👍')

        def broken(message_ids):
            raise StorageError()

        monkeypatch.setattr(store, 'reactions_for', broken)
        history = HistoryReconstructor(store).load()

        assert len(history) == 1
        assert history[0]['reactions'] == []

    def test_parent_failure_omits_parent_message(self, store, service, join_user, monkeypatch):
        alice = join_user('alice')
        parent = service.create_text(alice, 'hello')
        service.create_reply(alice, 'hi', parent['id'])

        def broken(message_ids):
            raise StorageError()

        monkeypatch.setattr(store, 'parent_summaries', broken)
        history = HistoryReconstructor(store).load()

        assert len(history) == 2
        assert 'parentMessage' not in history[1]
        assert history[1]['parent_message_id'] == parent['id']

    def test_message_fetch_failure_propagates(self, store, monkeypatch):
        def broken(limit):
            raise StorageError()

        monkeypatch.setattr(store, 'recent_messages', broken)
        with pytest.raises(StorageError):
            HistoryReconstructor(store).load()
