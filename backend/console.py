"""
Terminal front end for quiz battles and flashcard review.

Registered as Flask CLI commands, e.g.

    flask --app app quiz-battle --email me@example.com --topic "Photosynthesis"
    flask --app app flashcards --email me@example.com notes.txt
"""
import time

import click
from flask import current_app
from flask.cli import with_appcontext

import generators
from auth import find_user
from errors import StudyBuddyError
from flashcards import FlashcardReviewEngine, AGAIN, GOOD, EASY
from history import HistoryRepository, QUIZ_RESULTS, SESSIONS, new_study_session
from quiz_session import QuizSessionEngine, QuizState, FRIEND, MODES


def _user_or_abort(email):
    user = find_user(email)
    if not user:
        raise click.ClickException(f'No account found for {email}')
    return user


def _play_round(engine: QuizSessionEngine):
    click.echo(f"\nPlayer {engine.current_player}, you have {engine.remaining_seconds}s.")
    last_tick = time.monotonic()
    while engine.state is QuizState.IN_ROUND:
        question = engine.current_question
        click.echo(f"\nQ{engine.current_index + 1}/{engine.total_questions}: {question['question']}")
        for i, option in enumerate(question['options'], start=1):
            click.echo(f'  {i}. {option}')

        choice = click.prompt('Your answer', type=click.IntRange(1, len(question['options'])))
        elapsed = int(time.monotonic() - last_tick)
        last_tick += elapsed
        engine.tick(elapsed)
        if engine.state is not QuizState.IN_ROUND:
            click.echo("Time's up!")
            break

        engine.select_option(choice - 1)
        correct = question['options'][choice - 1] == question['answer']
        click.echo('Correct!' if correct else f"Not quite. Answer: {question['answer']}")
        if question.get('explanation'):
            click.echo(question['explanation'])
        engine.next_question()


@click.command('quiz-battle')
@click.option('--email', required=True, help='Account the result is saved to.')
@click.option('--topic', required=True, help='Topic or syllabus text.')
@click.option('--difficulty', type=click.Choice(generators.DIFFICULTIES), default='medium')
@click.option('--questions', 'count', type=int, default=generators.DEFAULT_QUESTIONS)
@click.option('--mood', type=click.Choice(generators.MOODS), default='neutral')
@click.option('--mode', type=click.Choice(MODES), default='solo')
@with_appcontext
def quiz_battle_command(email, topic, difficulty, count, mood, mode):
    """Play a timed solo or two-player quiz in the terminal."""
    user = _user_or_abort(email)
    repo = HistoryRepository()
    limit = current_app.config['HISTORY_LIMIT']

    engine = QuizSessionEngine()
    engine.on_finish(lambda result: repo.append(user.id, QUIZ_RESULTS, result.to_dict(), limit))
    engine.configure(topic, difficulty, generators.question_count_for(count), mood, mode)

    click.echo('Generating questions...')
    try:
        engine.start(generators.generate_quiz)
    except StudyBuddyError as exc:
        raise click.ClickException(exc.message)

    _play_round(engine)
    if mode == FRIEND:
        click.prompt('\nPass the keyboard to Player 2 and press Enter', default='', show_default=False)
        engine.begin_next_round()
        _play_round(engine)

    result = engine.result
    if mode == FRIEND:
        p1, p2 = engine.players[1], engine.players[2]
        click.echo(f'\nPlayer 1: {p1.score}/{result.totalQuestions} in {p1.duration}s')
        click.echo(f'Player 2: {p2.score}/{result.totalQuestions} in {p2.duration}s')
        click.echo('Result: tie!' if engine.winner == 'Tie' else f'Winner: {engine.winner}')
    else:
        click.echo(f'\nScore: {result.score}/{result.totalQuestions} in {result.durationSeconds}s')


@click.command('flashcards')
@click.option('--email', required=True, help='Account the study session is saved to.')
@click.option('--words', type=int, default=generators.DEFAULT_WORD_LIMIT)
@click.argument('source', type=click.File('r', encoding='utf-8'))
@with_appcontext
def flashcards_command(email, words, source):
    """Summarize a text file and review its flashcards."""
    user = _user_or_abort(email)
    text = source.read()
    try:
        pack = generators.generate_study_pack(text, word_limit=words)
    except StudyBuddyError as exc:
        raise click.ClickException(exc.message)

    session = new_study_session('text', getattr(source, 'name', 'Notes'), pack['summary'])
    HistoryRepository().append(user.id, SESSIONS, session, current_app.config['HISTORY_LIMIT'])
    click.echo(pack['summary'])

    engine = FlashcardReviewEngine(pack['flashcards'])
    if not len(engine):
        click.echo('\nNo flashcards were generated for this text.')
        return

    grades = {'a': AGAIN, 'g': GOOD, 'e': EASY}
    while True:
        card = engine.current
        click.echo(f"\n[{engine.to_dict()['position']}] {card['front']}")
        click.prompt('Press Enter to reveal', default='', show_default=False)
        engine.reveal()
        click.echo(card['back'])
        key = click.prompt('(a)gain, (g)ood, (e)asy or (q)uit', type=click.Choice(['a', 'g', 'e', 'q']))
        if key == 'q':
            break
        at_last = engine.current_index == len(engine) - 1
        engine.grade(grades[key])
        if at_last and key != 'a':
            click.echo('\nDeck complete.')
            break


def register_commands(app):
    app.cli.add_command(quiz_battle_command)
    app.cli.add_command(flashcards_command)
