"""
Quiz battle state machine.

A game moves through

    IDLE -> CONFIGURING -> GENERATING -> IN_ROUND -> ROUND_COMPLETE -> FINISHED

In friend mode the first ROUND_COMPLETE leads to a second round for player
two over the same questions and time budget. Timer ticks are driven by the
caller (one tick per elapsed second) so the engine itself never sleeps.
"""
import enum
import logging
import random
import string
import time
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Callable, List, Optional

from errors import QuizGenerationFailed, ValidationError

logger = logging.getLogger(__name__)

SECONDS_PER_QUESTION = 30
MAX_TOPIC_CHARS = 120

SOLO = 'solo'
FRIEND = 'friend'
MODES = (SOLO, FRIEND)

PLAYER_ONE = 'Player 1'
PLAYER_TWO = 'Player 2'
TIE = 'Tie'


class QuizState(enum.Enum):
    IDLE = 'idle'
    CONFIGURING = 'configuring'
    GENERATING = 'generating'
    IN_ROUND = 'in_round'
    ROUND_COMPLETE = 'round_complete'
    FINISHED = 'finished'


def new_entry_id() -> str:
    """Millisecond timestamp plus a short random suffix."""
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=5))
    return f'{int(time.time() * 1000)}-{suffix}'


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


@dataclass
class PlayerRound:
    score: int = 0
    duration: Optional[int] = None  # seconds used; None until the round ends


@dataclass
class QuizResult:
    id: str
    createdAt: str
    mode: str
    difficulty: str
    topic: str
    score: int
    totalQuestions: int
    durationSeconds: int

    def to_dict(self):
        return asdict(self)


def determine_winner(p1_score: int, p1_duration: int, p2_score: int, p2_duration: int, total: int) -> str:
    """Higher accuracy wins, then the shorter round, otherwise a tie."""
    p1_accuracy = p1_score / total if total > 0 else 0
    p2_accuracy = p2_score / total if total > 0 else 0
    if p1_accuracy > p2_accuracy:
        return PLAYER_ONE
    if p2_accuracy > p1_accuracy:
        return PLAYER_TWO
    if p1_duration < p2_duration:
        return PLAYER_ONE
    if p2_duration < p1_duration:
        return PLAYER_TWO
    return TIE


@dataclass
class QuizConfig:
    topic: str
    difficulty: str = 'medium'
    count: int = 5
    mood: str = 'neutral'
    mode: str = SOLO


class QuizSessionEngine:

    def __init__(self):
        self.state = QuizState.IDLE
        self.config: Optional[QuizConfig] = None
        self.questions: List[dict] = []
        self.players = {1: PlayerRound(), 2: PlayerRound()}
        self.current_player = 1
        self.current_index = 0
        self.selected_option: Optional[int] = None
        self.show_explanation = False
        self.remaining_seconds = 0
        self.error: Optional[str] = None
        self.winner: Optional[str] = None
        self.result: Optional[QuizResult] = None
        self._generation = 0
        self._on_finish: List[Callable[[QuizResult], None]] = []

    # -- configuration -------------------------------------------------

    def on_finish(self, callback: Callable[[QuizResult], None]):
        self._on_finish.append(callback)

    def configure(self, topic, difficulty='medium', count=5, mood='neutral', mode=SOLO):
        """Start a fresh game setup; abandons any round or pending generation."""
        topic = (topic or '').strip()
        if not topic:
            raise ValidationError('Please enter a topic or syllabus description.')
        if mode not in MODES:
            raise ValidationError(f'Unknown quiz mode: {mode}')
        try:
            count = int(count)
        except (TypeError, ValueError, OverflowError):
            raise ValidationError('Number of questions must be a whole number.')
        if count < 1:
            raise ValidationError('Number of questions must be at least 1.')

        self._cancel_pending()
        self.config = QuizConfig(topic=topic, difficulty=difficulty, count=count, mood=mood, mode=mode)
        self.questions = []
        self.players = {1: PlayerRound(), 2: PlayerRound()}
        self.current_player = 1
        self.winner = None
        self.result = None
        self.error = None
        self._reset_question()
        self.remaining_seconds = 0
        self.state = QuizState.CONFIGURING

    @property
    def round_budget(self) -> int:
        count = self.config.count if self.config else len(self.questions)
        return count * SECONDS_PER_QUESTION

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Optional[dict]:
        if self.state is not QuizState.IN_ROUND:
            return None
        return self.questions[self.current_index]

    # -- generation ------------------------------------------------------

    def begin_generation(self) -> int:
        """Enter GENERATING and return the ticket a later response must present."""
        if self.state is not QuizState.CONFIGURING:
            raise RuntimeError(f'Cannot generate questions while {self.state.value}')
        self._generation += 1
        self.error = None
        self.state = QuizState.GENERATING
        return self._generation

    def receive_questions(self, ticket: int, questions: List[dict]) -> bool:
        """Apply a generation response; stale or cancelled tickets are ignored."""
        if ticket != self._generation or self.state is not QuizState.GENERATING:
            logger.info('Discarding stale quiz generation response (ticket %s)', ticket)
            return False
        if not questions:
            self.generation_failed(ticket, QuizGenerationFailed.default_message)
            raise QuizGenerationFailed()

        self.questions = list(questions)
        self._start_round(1)
        return True

    def generation_failed(self, ticket: int, message: str) -> bool:
        if ticket != self._generation or self.state is not QuizState.GENERATING:
            return False
        self.error = message
        self.state = QuizState.CONFIGURING
        return True

    def start(self, generate: Callable[..., List[dict]]):
        """Generate questions synchronously with ``generate`` and enter the first round."""
        ticket = self.begin_generation()
        cfg = self.config
        try:
            questions = generate(cfg.topic, cfg.difficulty, cfg.count, cfg.mood)
        except QuizGenerationFailed as exc:
            self.generation_failed(ticket, exc.message)
            raise
        except Exception as exc:
            self.generation_failed(ticket, str(exc))
            raise
        self.receive_questions(ticket, questions)

    def cancel(self):
        """Drop pending generation and stop the timer; the setup is kept."""
        self._cancel_pending()
        self.remaining_seconds = 0
        if self.config is None:
            self.state = QuizState.IDLE
        elif self.state is not QuizState.FINISHED:
            self.state = QuizState.CONFIGURING

    def reset(self):
        """Back to IDLE; finish callbacks stay registered."""
        callbacks, generation = self._on_finish, self._generation
        self.__init__()
        self._on_finish = callbacks
        self._generation = generation + 1

    # -- playing ---------------------------------------------------------

    def begin_next_round(self):
        """Hand the same questions to player two (friend mode only)."""
        if not (self.state is QuizState.ROUND_COMPLETE and self.current_player == 1
                and self.config.mode == FRIEND):
            raise RuntimeError('No second round is pending')
        self._start_round(2)

    def select_option(self, index: int):
        if self.state is not QuizState.IN_ROUND or self.selected_option is not None:
            return
        question = self.questions[self.current_index]
        if not 0 <= index < len(question['options']):
            raise ValidationError('Option index out of range')

        self.selected_option = index
        self.show_explanation = True
        if question['options'][index] == question['answer']:
            self.players[self.current_player].score += 1

    def next_question(self):
        if self.state is not QuizState.IN_ROUND:
            return
        if self.current_index + 1 >= len(self.questions):
            self.finish_round()
            return
        self.current_index += 1
        self._reset_question()

    def tick(self, seconds: int = 1):
        """Advance the countdown; running out ends the round."""
        if self.state is not QuizState.IN_ROUND:
            return
        self.remaining_seconds = max(self.remaining_seconds - seconds, 0)
        if self.remaining_seconds == 0:
            self.finish_round()

    def finish_round(self):
        """End the current round; repeated calls after the first are no-ops."""
        if self.state is not QuizState.IN_ROUND:
            return
        player = self.players[self.current_player]
        player.duration = max(self.round_budget - self.remaining_seconds, 0)
        self._reset_question()
        self.state = QuizState.ROUND_COMPLETE

        if self.config.mode == SOLO or self.current_player == 2:
            self._finish()

    # -- internals -------------------------------------------------------

    def _start_round(self, player: int):
        self.current_player = player
        self.players[player] = PlayerRound()
        self.current_index = 0
        self._reset_question()
        self.remaining_seconds = self.round_budget
        self.state = QuizState.IN_ROUND

    def _reset_question(self):
        self.selected_option = None
        self.show_explanation = False

    def _cancel_pending(self):
        # Bumping the ticket makes any in-flight response stale
        self._generation += 1

    def _finish(self):
        total = len(self.questions)
        budget = self.round_budget
        cfg = self.config

        if cfg.mode == SOLO:
            score = self.players[1].score
            duration = self.players[1].duration
        else:
            p1, p2 = self.players[1], self.players[2]
            p1_duration = p1.duration if p1.duration is not None else budget
            p2_duration = p2.duration if p2.duration is not None else budget
            self.winner = determine_winner(p1.score, p1_duration, p2.score, p2_duration, total)
            if self.winner == PLAYER_TWO:
                score, duration = p2.score, p2_duration
            else:
                score, duration = p1.score, p1_duration

        self.result = QuizResult(
            id=new_entry_id(),
            createdAt=utc_now_iso(),
            mode=cfg.mode,
            difficulty=cfg.difficulty,
            topic=cfg.topic[:MAX_TOPIC_CHARS],
            score=score,
            totalQuestions=total,
            durationSeconds=max(duration or 0, 0),
        )
        self.state = QuizState.FINISHED
        for callback in self._on_finish:
            callback(self.result)

    def snapshot(self) -> dict:
        return {
            'state': self.state.value,
            'player': self.current_player,
            'index': self.current_index,
            'total': len(self.questions),
            'selectedOption': self.selected_option,
            'showExplanation': self.show_explanation,
            'remainingSeconds': self.remaining_seconds,
            'scores': {n: p.score for n, p in self.players.items()},
            'winner': self.winner,
            'error': self.error,
        }
