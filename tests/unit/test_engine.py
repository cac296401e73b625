from tabledrill.quiz import CellKind, DrillEngine, QuizConfiguration, RoundState, Submission, Outcome, start_round, grade_answers
from tests.fixtures.sample_data import irregular_verbs


def test_unlimited_round_shows_every_row(engine, verb_dataset, memory_store):
    quiz = engine.start_round(verb_dataset, QuizConfiguration(difficulty_level=2))
    assert [r.row_index for r in quiz.rows] == list(range(8))
    assert quiz.columns == ['Meaning', 'Base', 'Past']
    assert quiz.metadata['selection_case'] == 'all'
    # unlimited mode never writes memory
    assert memory_store.get(engine.memory.key('irregular-verbs')) is None


def test_rendering_handoff(engine, grammar_dataset):
    quiz = engine.start_round(grammar_dataset, QuizConfiguration(difficulty_level=3))
    first = quiz.rows[0]
    assert first.label == 'I'
    assert first.cells[2].kind == CellKind.SENTINEL
    inputs = [c for row in quiz.rows for c in row.cells if c.kind == CellKind.INPUT]
    assert inputs
    assert all(c.text is None for c in inputs)
    assert {(c.row, c.col) for c in inputs} == {(b.row, b.col) for b in quiz.blanks}
    texts = [c for row in quiz.rows for c in row.cells if c.kind == CellKind.TEXT]
    assert all(c.text == grammar_dataset.rows[c.row][c.col] for c in texts)


def test_limited_rounds_rotate_and_remember(engine, verb_dataset):
    cfg = QuizConfiguration(row_limit=4)
    first = engine.start_round(verb_dataset, cfg)
    second = engine.start_round(verb_dataset, cfg)
    assert len(first.round_state.rows) == 4
    assert second.metadata['selection_case'] == 'exact'
    assert set(first.round_state.rows).isdisjoint(second.round_state.rows)
    assert engine.memory.load('irregular-verbs') == second.round_state.rows


def test_retry_same_reuses_rows_without_touching_memory(engine, verb_dataset):
    cfg = QuizConfiguration(row_limit=3)
    first = engine.start_round(verb_dataset, cfg)
    remembered = engine.memory.load('irregular-verbs')
    harder = cfg.model_copy(update={'difficulty_level': 3})
    again = engine.start_round(verb_dataset, harder, round_state=first.round_state, retry_same=True)
    assert again.round_state.rows == first.round_state.rows
    assert again.metadata['selection_case'] == 'retry_same'
    assert engine.memory.load('irregular-verbs') == remembered


def test_retry_same_with_foreign_state_selects_fresh(engine, verb_dataset):
    stale = RoundState(dataset_identity='other', rows=[0, 1])
    quiz = engine.start_round(verb_dataset, QuizConfiguration(row_limit=2), round_state=stale, retry_same=True)
    assert quiz.metadata['selection_case'] != 'retry_same'


def test_retry_same_with_out_of_range_rows_selects_fresh(engine, verb_dataset):
    stale = RoundState(dataset_identity='irregular-verbs', rows=[0, 99])
    quiz = engine.start_round(verb_dataset, QuizConfiguration(row_limit=2), round_state=stale, retry_same=True)
    assert quiz.metadata['selection_case'] != 'retry_same'
    assert all(0 <= r < 8 for r in quiz.round_state.rows)


def test_grade_round(engine, verb_dataset):
    quiz = engine.start_round(verb_dataset, QuizConfiguration(difficulty_level=2))
    subs = [Submission(row=b.row, col=b.col, value=verb_dataset.rows[b.row][b.col].split('/')[0].upper()) for b in quiz.blanks]
    result = engine.grade(verb_dataset, quiz.blanks, subs)
    assert result.total_count == len(quiz.blanks)
    assert result.correct_count == result.total_count
    assert result.outcome == Outcome.PERFECT


def test_grade_one_wrong_is_near_miss(engine, verb_dataset):
    blanks = [(1, 2), (3, 2), (6, 3)]
    subs = [Submission(row=1, col=2, value='began'), Submission(row=3, col=2, value='went'), Submission(row=6, col=3, value='took')]
    result = engine.grade(verb_dataset, blanks, subs)
    assert result.outcome == Outcome.NEAR_MISS
    assert result.as_mapping()[(6, 3)].accepted_display == 'taken'


def test_convenience_functions_return_dicts(engine):
    data = irregular_verbs()
    res = start_round(data, {'row_limit': 2, 'difficulty_level': 3}, request_id='r1')
    assert isinstance(res, dict)
    assert len(res['rows']) == 2
    assert res['round_state']['dataset_identity'] == 'irregular-verbs'
    graded = grade_answers(data, res['blanks'], [])
    assert graded['total_count'] == len(res['blanks'])
    assert graded['correct_count'] == 0


def test_engine_singleton_uses_shared_memory():
    eng = DrillEngine.get_instance()
    assert eng is DrillEngine.get_instance()
    assert eng.memory is not None
