"""Tests for cursor movement and re-anchoring after marks change the entry list."""

import pytest

from diffmark_core.navigation import Navigator
from diffmark_core.review.session import ReviewSession
from diffmark_core.state import SEEN, UNSEEN


def _lines(count, changed=()):
    lines = [f"line {i}" for i in range(1, count + 1)]
    for n in changed:
        lines[n - 1] = f"changed {n}"
    return "\n".join(lines) + "\n"


@pytest.fixture
def session(git_repo):
    """``a.lua`` with three hunks, ``b.lua`` added, ``c.lua`` with one hunk."""
    git_repo.commit("initial", {"a.lua": _lines(30), "c.lua": _lines(10)})
    git_repo.checkout("feature", create=True)
    git_repo.commit(
        "work",
        {"a.lua": _lines(30, changed=(3, 15, 27)), "b.lua": "return 1\n", "c.lua": _lines(10, changed=(5,))},
    )
    session = ReviewSession(path=str(git_repo.path))
    session.fetch()
    return session


@pytest.fixture
def nav(session):
    navigator = Navigator(session)
    navigator.restore()
    return navigator


def _at(nav):
    entry = nav.current_entry()
    original, total = nav.current_hunk_index()
    return entry.filename, entry.type, original, total


# ---------------------------------------------------------------------------
# Plain movement
# ---------------------------------------------------------------------------


class TestMovement:
    def test_restore_starts_at_first_unseen_hunk(self, nav):
        assert _at(nav) == ("a.lua", UNSEEN, 1, 3)

    def test_next_hunk_walks_into_next_file(self, nav):
        nav.next_hunk()
        assert _at(nav) == ("a.lua", UNSEEN, 2, 3)
        nav.next_hunk()
        nav.next_hunk()
        assert _at(nav) == ("b.lua", UNSEEN, 1, 1)

    def test_prev_hunk_enters_previous_file_at_its_last_hunk(self, nav):
        nav.next_file()
        nav.prev_hunk()
        assert _at(nav) == ("a.lua", UNSEEN, 3, 3)

    def test_next_file_wraps_around(self, nav):
        nav.next_file()
        nav.next_file()
        assert _at(nav)[0] == "c.lua"
        nav.next_file()
        assert _at(nav)[0] == "a.lua"

    def test_prev_file_wraps_around(self, nav):
        nav.prev_file()
        assert _at(nav)[:2] == ("c.lua", UNSEEN)

    def test_move_to_maps_original_index(self, nav, session):
        session.mark_hunk(session.find_entry("a.lua", entry_type=UNSEEN), 1)
        entry = nav.move_to("a.lua|unseen", 3)
        assert entry.id == "a.lua|unseen"
        assert nav.cursor.hunk == 2
        assert nav.current_hunk_index() == (3, 3)

    def test_move_to_unknown_entry(self, nav):
        assert nav.move_to("nope|unseen") is None
        assert _at(nav) == ("a.lua", UNSEEN, 1, 3)


# ---------------------------------------------------------------------------
# Hunk marks
# ---------------------------------------------------------------------------


class TestHunkMarks:
    def test_mark_moves_to_next_unseen_hunk_in_same_file(self, nav):
        nav.mark_hunk()
        assert _at(nav) == ("a.lua", UNSEEN, 2, 3)

    def test_marking_last_unseen_hunk_moves_to_next_file(self, nav, session):
        nav.mark_hunk()
        nav.mark_hunk()
        nav.mark_hunk()
        assert _at(nav) == ("b.lua", UNSEEN, 1, 1)
        assert session.find_entry("a.lua", entry_type=UNSEEN) is None

    def test_mark_skips_hunks_already_seen(self, nav, session):
        session.mark_hunk(session.find_entry("a.lua", entry_type=UNSEEN), 2)
        nav.move_to("a.lua|unseen", 1)
        nav.mark_hunk()
        assert _at(nav) == ("a.lua", UNSEEN, 3, 3)

    def test_unmark_last_seen_hunk_lands_on_same_file(self, nav, session):
        session.mark_hunk(session.find_entry("a.lua", entry_type=UNSEEN), 2)
        nav.move_to("a.lua|seen", 2)
        nav.unmark_hunk()
        assert session.find_entry("a.lua", entry_type=SEEN) is None
        assert _at(nav)[:2] == ("a.lua", UNSEEN)

    def test_unmark_moves_to_next_seen_hunk(self, nav, session):
        entry = session.find_entry("a.lua", entry_type=UNSEEN)
        session.mark_hunk(entry, 1)
        session.mark_hunk(entry, 3)
        nav.move_to("a.lua|seen", 1)
        nav.unmark_hunk()
        assert _at(nav) == ("a.lua", SEEN, 3, 3)

    def test_marking_everything_keeps_cursor_on_a_visible_entry(self, nav, session):
        for _ in range(5):
            nav.mark_hunk()
        assert all(e.type == SEEN for e in session.entries)
        assert nav.current_entry() is not None
        assert nav.current_entry().id in {e.id for e in session.entries}

    def test_dropped_mutation_leaves_cursor_alone(self, nav, session):
        session._mutation_lock.acquire()
        try:
            entry = nav.mark_hunk()
        finally:
            session._mutation_lock.release()
        assert entry.id == "a.lua|unseen"
        assert _at(nav) == ("a.lua", UNSEEN, 1, 3)
        assert session.state.marks == frozenset()


# ---------------------------------------------------------------------------
# File marks
# ---------------------------------------------------------------------------


class TestFileMarks:
    def test_mark_file_moves_to_next_unseen_file(self, nav):
        nav.mark_file()
        assert _at(nav) == ("b.lua", UNSEEN, 1, 1)

    def test_mark_file_from_seen_entry_stays_on_file(self, nav, session):
        session.mark_hunk(session.find_entry("a.lua", entry_type=UNSEEN), 2)
        nav.move_to("a.lua|seen", 2)
        nav.mark_file()
        assert _at(nav) == ("a.lua", SEEN, 2, 3)

    def test_mark_last_unseen_file_falls_back_to_first_unseen(self, nav, session):
        nav.next_file()
        nav.next_file()
        nav.mark_file()  # c.lua: nothing unseen after it
        assert _at(nav)[:2] == ("a.lua", UNSEEN)

    def test_mark_file_when_nothing_else_unseen(self, nav, session):
        for filename in ("b.lua", "c.lua"):
            session.mark_file(session.find_entry(filename, entry_type=UNSEEN))
        nav.move_to("a.lua|unseen")
        nav.mark_file()
        assert _at(nav)[:2] == ("a.lua", SEEN)

    def test_unmark_only_seen_file(self, nav, session):
        session.mark_file(session.find_entry("a.lua", entry_type=UNSEEN))
        nav.move_to("a.lua|seen")
        nav.unmark_file()
        assert _at(nav)[:2] == ("a.lua", UNSEEN)

    def test_reset_returns_to_same_file(self, nav, session):
        session.mark_file(session.find_entry("a.lua", entry_type=UNSEEN))
        session.mark_file(session.find_entry("c.lua", entry_type=UNSEEN))
        nav.move_to("c.lua|seen")
        nav.reset_marks()
        assert _at(nav)[:2] == ("c.lua", UNSEEN)
        assert session.state.marks == frozenset()


# ---------------------------------------------------------------------------
# Re-entry
# ---------------------------------------------------------------------------


class TestRestore:
    def test_save_position_records_rendered_hunk_line(self, nav, session):
        nav.next_hunk()
        nav.save_position()
        position = session.state.get_position()
        # Two context lines, hunk 1 (two lines), eleven context lines, then hunk 2.
        assert (position.section, position.filename, position.cursor_lnum) == (UNSEEN, "a.lua", 16)

    def test_restore_returns_to_saved_hunk(self, session):
        session.state.save_position(UNSEEN, "a.lua", 16)
        nav = Navigator(session)
        nav.restore()
        assert _at(nav) == ("a.lua", UNSEEN, 2, 3)

    def test_restore_saved_position(self, session):
        session.mark_file(session.find_entry("c.lua", entry_type=UNSEEN))
        session.state.save_position(SEEN, "c.lua")
        nav = Navigator(session)
        assert nav.restore().id == "c.lua|seen"

    def test_restore_falls_back_to_other_type_of_same_file(self, session):
        session.state.save_position(SEEN, "b.lua")
        nav = Navigator(session)
        assert nav.restore().id == "b.lua|unseen"

    def test_restore_current_file(self, session):
        nav = Navigator(session)
        assert nav.restore(current_filename="c.lua").id == "c.lua|unseen"

    def test_restore_unknown_file_goes_to_first_unseen(self, session):
        nav = Navigator(session)
        assert nav.restore(current_filename="zzz.lua").id == "a.lua|unseen"

    def test_first_hunk_matching_seen_when_nothing_seen(self, nav):
        assert nav.first_hunk_matching(True) is None
