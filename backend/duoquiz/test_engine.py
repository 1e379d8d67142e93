from __future__ import annotations

from unittest import TestCase

from . import engine
from .errors import Forbidden, InvalidArgument, InvalidIndex, InvalidState, NotReady, RoomFull
from .models import AnswerColor, Role, SessionStatus

P1, P2 = Role.P1, Role.P2


def _started(questions=("Q1", "Q2")):
    s = engine.create_session("g", list(questions))
    s, _ = engine.join(s, "A")
    s, _ = engine.join(s, "B")
    return engine.start(s, P1)


class CreateJoinStartTests(TestCase):
    def test_create_builds_one_record_per_question(self):
        s = engine.create_session("g1", ["Q1", "Q2", "Q3"])

        self.assertEqual(s.status, SessionStatus.WAITING)
        self.assertEqual(s.current_question_index, 0)
        self.assertEqual(s.admin, P1)
        self.assertEqual([q.question_text for q in s.answers], ["Q1", "Q2", "Q3"])
        self.assertEqual([q.question_index for q in s.answers], [0, 1, 2])
        self.assertIsNone(s.answers[0].revealed_at)
        self.assertFalse(s.answers[0].p1.ready)

    def test_create_rejects_empty_question_list(self):
        with self.assertRaises(InvalidArgument):
            engine.create_session("g2", [])

    def test_create_rejects_non_list(self):
        with self.assertRaises(InvalidArgument):
            engine.create_session("g3", "Q1")

    def test_join_fills_slots_in_order_and_rejoin_is_idempotent(self):
        s = engine.create_session("g", ["Q1", "Q2"])

        s, role = engine.join(s, "A")
        self.assertEqual(role, P1)
        self.assertEqual(s.players[P1].id, "A")
        self.assertTrue(s.players[P1].online)

        s, role = engine.join(s, "B")
        self.assertEqual(role, P2)
        self.assertEqual(s.players[P2].id, "B")

        again, role = engine.join(s, "A")
        self.assertEqual(role, P1)
        self.assertEqual(again.players[P1].id, "A")
        self.assertEqual(again.players[P2].id, "B")

        with self.assertRaises(RoomFull):
            engine.join(s, "C")

    def test_rejoin_after_going_offline_marks_online(self):
        s, _ = engine.join(engine.create_session("g", ["Q1"]), "A")
        s = s.with_player(P1, online=False)

        s, role = engine.join(s, "A")

        self.assertEqual(role, P1)
        self.assertTrue(s.players[P1].online)

    def test_start_guards(self):
        s = engine.create_session("g", ["Q1", "Q2"])
        s, _ = engine.join(s, "A")
        with self.assertRaises(NotReady):
            engine.start(s, P1)

        s, _ = engine.join(s, "B")
        with self.assertRaises(Forbidden):
            engine.start(s, P2)

        started = engine.start(s, P1)
        self.assertEqual(started.status, SessionStatus.IN_PROGRESS)
        self.assertEqual(started.current_question_index, 0)

        with self.assertRaises(InvalidState):
            engine.start(started, P1)

    def test_failed_transition_leaves_input_untouched(self):
        s = engine.create_session("g", ["Q1"])
        s, _ = engine.join(s, "A")
        before = s.model_dump()

        with self.assertRaises(NotReady):
            engine.start(s, P1)

        self.assertEqual(s.model_dump(), before)


class AnswerCommentReadyTests(TestCase):
    def test_commands_rejected_while_waiting(self):
        s = engine.create_session("g", ["Q1"])
        with self.assertRaises(InvalidState):
            engine.choose_answer(s, P1, 0, AnswerColor.RED)
        with self.assertRaises(InvalidState):
            engine.submit_comment(s, P1, 0, "hi")
        with self.assertRaises(InvalidState):
            engine.set_ready(s, P1, 0, True)

    def test_commands_rejected_for_other_question_index(self):
        s = _started()
        with self.assertRaises(InvalidIndex):
            engine.choose_answer(s, P1, 1, AnswerColor.RED)
        with self.assertRaises(InvalidIndex):
            engine.submit_comment(s, P1, -1, "hi")
        with self.assertRaises(InvalidIndex):
            engine.set_ready(s, P1, 5, False)

    def test_unknown_answer_value_is_rejected(self):
        with self.assertRaises(InvalidArgument):
            engine.choose_answer(_started(), P1, 0, "blue")

    def test_choose_answer_reveals_once_and_resets_own_ready(self):
        s = _started()
        self.assertIsNone(s.answers[0].revealed_at)

        s = engine.choose_answer(s, P1, 0, AnswerColor.GREEN, clock=lambda: 100.0)
        self.assertEqual(s.answers[0].revealed_at, 100.0)
        self.assertEqual(s.answers[0].p1.answer, AnswerColor.GREEN)
        self.assertEqual(s.answers[0].p1.answered_at, 100.0)

        s = engine.set_ready(s, P1, 0, True)
        self.assertTrue(s.answers[0].p1.ready)

        s = engine.choose_answer(s, P1, 0, AnswerColor.YELLOW, clock=lambda: 200.0)
        self.assertEqual(s.answers[0].revealed_at, 100.0)
        self.assertEqual(s.answers[0].p1.answered_at, 200.0)
        self.assertEqual(s.answers[0].p1.answer, AnswerColor.YELLOW)
        self.assertFalse(s.answers[0].p1.ready)

    def test_other_role_answer_keeps_reveal_timestamp(self):
        s = engine.choose_answer(_started(), P1, 0, AnswerColor.RED, clock=lambda: 5.0)
        s = engine.choose_answer(s, P2, 0, AnswerColor.RED, clock=lambda: 9.0)
        self.assertEqual(s.answers[0].revealed_at, 5.0)

    def test_comment_resets_only_own_ready(self):
        s = _started()
        s = engine.choose_answer(s, P1, 0, AnswerColor.GREEN)
        s = engine.choose_answer(s, P2, 0, AnswerColor.RED)
        s = engine.set_ready(s, P2, 0, True)

        s = engine.submit_comment(s, P1, 0, "note")

        self.assertEqual(s.answers[0].p1.comment, "note")
        self.assertFalse(s.answers[0].p1.ready)
        self.assertTrue(s.answers[0].p2.ready)

        s = engine.submit_comment(s, P2, 0, "again")
        self.assertFalse(s.answers[0].p2.ready)

    def test_comment_after_ready_clears_ready_without_touching_other_role(self):
        s = _started()
        s = engine.choose_answer(s, P1, 0, AnswerColor.GREEN)
        s = engine.set_ready(s, P1, 0, True)
        s = engine.choose_answer(s, P2, 0, AnswerColor.RED)

        s = engine.submit_comment(s, P2, 0, "hmm")
        s = engine.submit_comment(s, P1, 0, "note")

        self.assertEqual(s.answers[0].p1.comment, "note")
        self.assertFalse(s.answers[0].p1.ready)
        self.assertFalse(s.answers[0].p2.ready)
        self.assertEqual(s.current_question_index, 0)

    def test_ready_without_answer_is_rejected(self):
        with self.assertRaises(InvalidState):
            engine.set_ready(_started(), P1, 0, True)

    def test_unready_without_answer_is_allowed(self):
        s = engine.set_ready(_started(), P1, 0, False)
        self.assertFalse(s.answers[0].p1.ready)

    def test_single_ready_does_not_advance(self):
        s = _started()
        s = engine.choose_answer(s, P1, 0, AnswerColor.GREEN)
        s = engine.set_ready(s, P1, 0, True)

        self.assertEqual(s.current_question_index, 0)
        self.assertEqual(s.status, SessionStatus.IN_PROGRESS)

    def test_both_ready_advances_then_completes(self):
        s = _started()
        s = engine.choose_answer(s, P1, 0, AnswerColor.GREEN)
        s = engine.choose_answer(s, P2, 0, AnswerColor.RED)
        s = engine.set_ready(s, P1, 0, True)
        s = engine.set_ready(s, P2, 0, True)
        self.assertEqual(s.current_question_index, 1)
        self.assertEqual(s.status, SessionStatus.IN_PROGRESS)

        s = engine.choose_answer(s, P1, 1, AnswerColor.YELLOW)
        s = engine.set_ready(s, P1, 1, True)
        s = engine.choose_answer(s, P2, 1, AnswerColor.GREEN)
        s = engine.set_ready(s, P2, 1, True)
        self.assertEqual(s.status, SessionStatus.COMPLETED)
        self.assertEqual(s.current_question_index, 1)

        with self.assertRaises(InvalidState):
            engine.choose_answer(s, P1, 1, AnswerColor.RED)

    def test_single_question_session_completes_without_moving_index(self):
        s = _started(["Only"])
        s = engine.choose_answer(s, P1, 0, AnswerColor.RED)
        s = engine.choose_answer(s, P2, 0, AnswerColor.RED)
        s = engine.set_ready(s, P2, 0, True)
        s = engine.set_ready(s, P1, 0, True)

        self.assertEqual(s.status, SessionStatus.COMPLETED)
        self.assertEqual(s.current_question_index, 0)

    def test_chaotic_toggling_records_final_answers(self):
        s = _started()
        s = engine.choose_answer(s, P1, 0, AnswerColor.RED)
        s = engine.set_ready(s, P1, 0, True)
        s = engine.choose_answer(s, P1, 0, AnswerColor.YELLOW)
        s = engine.choose_answer(s, P2, 0, AnswerColor.GREEN)
        s = engine.set_ready(s, P2, 0, True)
        s = engine.set_ready(s, P2, 0, False)
        s = engine.set_ready(s, P1, 0, True)
        self.assertEqual(s.current_question_index, 0)

        s = engine.choose_answer(s, P2, 0, AnswerColor.RED)
        s = engine.set_ready(s, P1, 0, False)
        s = engine.set_ready(s, P1, 0, True)
        self.assertEqual(s.current_question_index, 0)

        s = engine.set_ready(s, P2, 0, True)

        self.assertEqual(s.current_question_index, 1)
        self.assertEqual(s.answers[0].p1.answer, AnswerColor.YELLOW)
        self.assertEqual(s.answers[0].p2.answer, AnswerColor.RED)
        self.assertTrue(s.answers[0].p1.ready)
        self.assertTrue(s.answers[0].p2.ready)
        self.assertFalse(s.answers[1].p1.ready)
        self.assertIsNone(s.answers[1].p1.answer)
