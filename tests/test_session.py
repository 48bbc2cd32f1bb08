"""Tests for the selection session state machine."""

import pytest

from portalshot.utils.region import Region
from portalshot.utils.session import SelectionSession, SessionState


class TestSelectionSession:
    """Test SelectionSession transitions."""

    @pytest.fixture
    def commits(self):
        return []

    @pytest.fixture
    def session(self, monitor, commits):
        return SelectionSession(monitor, on_commit=commits.append)

    def drag(self, session, start, end):
        session.press(*start)
        session.move(*end)
        session.release(*end)

    def test_initial_state(self, session) -> None:
        assert session.state is SessionState.IDLE
        assert session.current_selection is None
        assert session.committed_region is None
        assert not session.dragging

    def test_press_starts_drag(self, session) -> None:
        assert session.press(10, 20)
        assert session.state is SessionState.DRAGGING
        assert session.drag_anchor == (10, 20)
        assert session.dragging

    def test_move_updates_selection(self, session) -> None:
        session.press(300, 250)
        assert session.move(100, 100)
        assert session.current_selection == Region(100, 100, 200, 150)
        assert session.state is SessionState.DRAGGING

    def test_move_without_press_is_ignored(self, session) -> None:
        assert not session.move(50, 50)
        assert session.state is SessionState.IDLE
        assert session.current_selection is None

    def test_release_enters_preview(self, session) -> None:
        session.press(100, 100)
        assert session.release(300, 250)
        assert session.state is SessionState.PREVIEWING
        assert session.current_selection == Region(100, 100, 200, 150)
        assert not session.dragging
        assert session.drag_anchor is None

    def test_confirm_commits_global_region(self, session, commits) -> None:
        """Drag on a monitor at x=1920 commits a region in desktop space."""
        self.drag(session, (100, 100), (300, 250))

        assert session.confirm()
        assert session.state is SessionState.COMMITTED
        assert session.committed_region == Region(2020, 100, 200, 150)
        assert commits == [Region(2020, 100, 200, 150)]

    def test_confirm_without_selection_is_ignored(self, session, commits) -> None:
        assert not session.confirm()
        session.press(10, 10)
        assert not session.confirm()
        assert session.state is SessionState.DRAGGING
        assert commits == []

    def test_second_confirm_is_ignored(self, session, commits) -> None:
        self.drag(session, (0, 0), (50, 50))
        assert session.confirm()
        assert not session.confirm()
        assert len(commits) == 1

    def test_press_while_previewing_restarts(self, session) -> None:
        self.drag(session, (0, 0), (50, 50))
        assert session.press(200, 200)
        assert session.state is SessionState.DRAGGING
        assert session.current_selection is None
        session.release(260, 230)
        assert session.current_selection == Region(200, 200, 60, 30)

    def test_click_without_drag_gives_empty_selection(self, session) -> None:
        session.press(40, 40)
        session.release(40, 40)
        assert session.state is SessionState.PREVIEWING
        assert session.current_selection.is_empty

    @pytest.mark.parametrize("steps", [0, 1, 2])
    def test_cancel_before_commit(self, session, commits, steps) -> None:
        actions = [lambda: session.press(1, 1), lambda: session.release(9, 9)]
        for action in actions[:steps]:
            action()

        assert session.cancel()
        assert session.state is SessionState.CANCELLED
        assert session.current_selection is None
        assert not session.confirm()
        assert commits == []

    def test_cancel_after_commit_has_no_effect(self, session, commits) -> None:
        self.drag(session, (0, 0), (50, 50))
        session.confirm()

        assert not session.cancel()
        assert session.state is SessionState.COMMITTED
        assert len(commits) == 1

    def test_terminal_states_ignore_input(self, session) -> None:
        session.cancel()
        assert not session.press(1, 1)
        assert not session.move(2, 2)
        assert not session.release(3, 3)
        assert not session.cancel()
        assert session.state.is_terminal
