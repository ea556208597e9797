"""
Ball-by-ball cricket scoring.

The operator's working copy of a match is a plain dict:

    {
        'cricketData': {...},      # the sub-document stored on the match
        'prompts': ['batsmen'],    # outstanding questions, head first
        'completed': False,
        'batterSlot': 'striker',   # end the next batter walks in at
    }

Every function here returns a new state and leaves its argument untouched,
so a copy that failed to sync can be submitted again as it is.
Innings 1 is always batted by team1 and innings 2 by team2.
"""
import copy

from utils.errors import ConflictError, ValidationError

OVERS_PER_INNINGS = 8
BALLS_PER_OVER = 6
BALLS_PER_INNINGS = OVERS_PER_INNINGS * BALLS_PER_OVER

RUN_VALUES = (0, 1, 2, 3, 4, 6)
EXTRAS = {'wide': 'WD', 'no_ball': 'NB'}
# Numeric codes used by the scoring console buttons
EXTRA_CODES = {0: 'wide', 1: 'no_ball'}
TOSS_DECISIONS = ('bat', 'bowl')

DEFAULT_STRIKER = 'Striker'
DEFAULT_NON_STRIKER = 'Non-Striker'
DEFAULT_BOWLER = 'Bowler'

PROMPT_TOSS = 'toss'
PROMPT_BATSMEN = 'batsmen'
PROMPT_NEW_BATTER = 'new_batter'
PROMPT_NEW_BOWLER = 'new_bowler'

AWAITING_TOSS = 'awaiting_toss'
AWAITING_BATSMEN = 'awaiting_batsmen'
IN_PLAY = 'in_play'
AWAITING_NEW_BATTER = 'awaiting_new_batter'
AWAITING_NEW_BOWLER = 'awaiting_new_bowler'
INNINGS_BREAK = 'innings_break'
COMPLETED = 'completed'

PROMPT_PHASES = {
    PROMPT_TOSS: AWAITING_TOSS,
    PROMPT_BATSMEN: AWAITING_BATSMEN,
    PROMPT_NEW_BATTER: AWAITING_NEW_BATTER,
    PROMPT_NEW_BOWLER: AWAITING_NEW_BOWLER,
}

PROMPT_MESSAGES = {
    PROMPT_TOSS: 'Record the toss before scoring.',
    PROMPT_BATSMEN: 'Enter the opening striker and non-striker.',
    PROMPT_NEW_BATTER: 'Enter the name of the incoming batter.',
    PROMPT_NEW_BOWLER: 'Enter the name of the bowler for the next over.',
}


class ScoringBlocked(ConflictError):
    """A ball or answer arrived while a different prompt is outstanding."""

    def __init__(self, prompt):
        super().__init__(PROMPT_MESSAGES[prompt])
        self.prompt = prompt

    def to_dict(self):
        body = super().to_dict()
        body['prompt'] = self.prompt
        return body


# --- DOCUMENT DEFAULTS ---

def default_innings():
    return {'runs': 0, 'wickets': 0, 'overs': 0, 'balls': 0}


def default_batter(name):
    return {'name': name, 'runs': 0, 'balls': 0}


def default_bowling(name=DEFAULT_BOWLER):
    return {'name': name, 'wickets': 0, 'runs': 0, 'overs': 0, 'balls': 0}


def default_batting():
    return {
        'striker': default_batter(DEFAULT_STRIKER),
        'nonStriker': default_batter(DEFAULT_NON_STRIKER),
    }


def default_cricket_data():
    """The zeroed sub-document a cricket match gets when it goes live."""
    return {
        'innings': 1,
        'team1': default_innings(),
        'team2': default_innings(),
        'target': None,
        'batting': default_batting(),
        'bowling': default_bowling(),
        'thisOver': [],
        'toss': None,
    }


def _count(value, field, upper=None):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f'cricketData.{field} must be a non-negative whole number.')
    if upper is not None and value > upper:
        raise ValidationError(f'cricketData.{field} must be at most {upper}.')
    return value


def _section(data, field, keys):
    section = data.get(field)
    if not isinstance(section, dict):
        raise ValidationError(f'cricketData.{field} must be an object.')
    missing = [key for key in keys if key not in section]
    if missing:
        raise ValidationError(f"cricketData.{field} is missing: {', '.join(missing)}")
    return section


def _player(data, field, keys):
    section = _section(data, field, ('name',) + keys)
    if not isinstance(section['name'], str) or not section['name'].strip():
        raise ValidationError(f'cricketData.{field}.name must be a non-empty string.')
    for key in keys:
        _count(section[key], f'{field}.{key}', BALLS_PER_OVER - 1 if key == 'balls' and field == 'bowling' else None)
    return section


def validate_cricket_data(data):
    """
    Checks a cricketData document sent by a client and returns it with
    target and toss defaulted. Raises ValidationError on any bad field.
    """
    if not isinstance(data, dict):
        raise ValidationError('cricketData must be an object.')
    missing = [key for key in ('innings', 'team1', 'team2', 'batting', 'bowling', 'thisOver') if key not in data]
    if missing:
        raise ValidationError(f"cricketData is missing: {', '.join(missing)}")

    cricket = default_cricket_data()
    cricket.update(copy.deepcopy(data))

    if cricket['innings'] not in (1, 2) or isinstance(cricket['innings'], bool):
        raise ValidationError('cricketData.innings must be 1 or 2.')
    for side_key in ('team1', 'team2'):
        side = _section(cricket, side_key, ('runs', 'wickets', 'overs', 'balls'))
        _count(side['runs'], f'{side_key}.runs')
        _count(side['wickets'], f'{side_key}.wickets')
        _count(side['overs'], f'{side_key}.overs', OVERS_PER_INNINGS)
        _count(side['balls'], f'{side_key}.balls', BALLS_PER_OVER - 1)

    batting = _section(cricket, 'batting', ('striker', 'nonStriker'))
    _player(batting, 'striker', ('runs', 'balls'))
    _player(batting, 'nonStriker', ('runs', 'balls'))
    _player(cricket, 'bowling', ('wickets', 'runs', 'overs', 'balls'))

    this_over = cricket['thisOver']
    if not isinstance(this_over, list) or not all(isinstance(mark, str) for mark in this_over):
        raise ValidationError('cricketData.thisOver must be a list of strings.')
    if cricket['target'] is not None:
        _count(cricket['target'], 'target')
    toss = cricket['toss']
    if toss is not None:
        if not isinstance(toss, dict) or not isinstance(toss.get('winner'), str) \
                or toss.get('decision') not in TOSS_DECISIONS:
            raise ValidationError("cricketData.toss needs a winner and a decision of 'bat' or 'bowl'.")

    prompts = cricket.get('pendingPrompts')
    if prompts is not None:
        if not isinstance(prompts, list) or any(not isinstance(p, str) or p not in PROMPT_PHASES for p in prompts):
            raise ValidationError('cricketData.pendingPrompts holds an unknown prompt.')
    if cricket.get('batterSlot', 'striker') not in ('striker', 'nonStriker'):
        raise ValidationError("cricketData.batterSlot must be 'striker' or 'nonStriker'.")
    return cricket


def is_cricket_sport(sport_name):
    """Cricket Boys, Cricket Girls and so on. The check is case-sensitive."""
    return bool(sport_name) and 'Cricket' in sport_name


# --- STATE ---

def new_state(cricket_data=None):
    """
    Builds a working copy from a stored document, or from scratch.
    Prompts saved by the last sync are restored; older documents without
    them get their prompts from the toss and batter names.
    """
    cricket = default_cricket_data()
    if cricket_data:
        cricket.update(copy.deepcopy(cricket_data))
    saved_prompts = cricket.pop('pendingPrompts', None)
    batter_slot = cricket.pop('batterSlot', None) or 'striker'

    completed = chase_finished(cricket)
    prompts = []
    if not completed:
        if saved_prompts is not None:
            prompts = list(saved_prompts)
        elif not cricket.get('toss'):
            prompts = [PROMPT_TOSS, PROMPT_BATSMEN]
        elif _batting_unset(cricket):
            prompts = [PROMPT_BATSMEN]

    return {
        'cricketData': cricket,
        'prompts': prompts,
        'completed': completed,
        'batterSlot': batter_slot,
    }


def _batting_unset(cricket):
    batting = cricket['batting']
    return (batting['striker']['name'] == DEFAULT_STRIKER
            or batting['nonStriker']['name'] == DEFAULT_NON_STRIKER)


def batting_side(cricket):
    return 'team1' if cricket['innings'] == 1 else 'team2'


def chase_finished(cricket):
    """True once the second innings has run out of overs or passed the target."""
    if cricket['innings'] != 2:
        return False
    chasing = cricket['team2']
    if chasing['overs'] >= OVERS_PER_INNINGS:
        return True
    target = cricket.get('target')
    return target is not None and chasing['runs'] >= target


def pending_prompt(state):
    if state['completed'] or not state['prompts']:
        return None
    return state['prompts'][0]


def phase(state):
    if state['completed']:
        return COMPLETED
    prompt = pending_prompt(state)
    if prompt is None:
        return IN_PLAY
    if prompt == PROMPT_BATSMEN and state['cricketData']['innings'] == 2:
        return INNINGS_BREAK
    return PROMPT_PHASES[prompt]


def describe(state):
    """What the scoring console needs to render the working copy."""
    cricket = state['cricketData']
    prompt = pending_prompt(state)
    return {
        'phase': phase(state),
        'prompt': prompt,
        'promptMessage': PROMPT_MESSAGES.get(prompt),
        'battingSide': batting_side(cricket),
        'cricketData': copy.deepcopy(cricket),
    }


# --- PROMPT ANSWERS ---

def _require_name(value, field):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{field}' is required.")
    return value.strip()


def _answer(state, prompt):
    if state['completed']:
        raise ConflictError('The match is complete. No further scoring is allowed.')
    outstanding = pending_prompt(state)
    if outstanding is None:
        raise ConflictError('Nothing is waiting for an answer right now.')
    if outstanding != prompt:
        raise ScoringBlocked(outstanding)
    state = copy.deepcopy(state)
    state['prompts'].pop(0)
    return state


def set_toss(state, winner, decision):
    winner = _require_name(winner, 'winner')
    if decision not in TOSS_DECISIONS:
        raise ValidationError("Toss decision must be 'bat' or 'bowl'.")
    state = _answer(state, PROMPT_TOSS)
    state['cricketData']['toss'] = {'winner': winner, 'decision': decision}
    return state


def set_batsmen(state, striker, non_striker, bowler=None):
    """Opening pair for an innings, optionally with the opening bowler."""
    striker = _require_name(striker, 'striker')
    non_striker = _require_name(non_striker, 'nonStriker')
    if striker == non_striker:
        raise ValidationError('Striker and non-striker must be different players.')
    state = _answer(state, PROMPT_BATSMEN)
    cricket = state['cricketData']
    cricket['batting'] = {
        'striker': default_batter(striker),
        'nonStriker': default_batter(non_striker),
    }
    if bowler:
        cricket['bowling'] = default_bowling(_require_name(bowler, 'bowler'))
    state['batterSlot'] = 'striker'
    return state


def set_new_batter(state, name):
    name = _require_name(name, 'name')
    state = _answer(state, PROMPT_NEW_BATTER)
    state['cricketData']['batting'][state['batterSlot']] = default_batter(name)
    state['batterSlot'] = 'striker'
    return state


def set_new_bowler(state, name):
    name = _require_name(name, 'name')
    state = _answer(state, PROMPT_NEW_BOWLER)
    state['cricketData']['bowling'] = default_bowling(name)
    return state


# --- BALL EVENTS ---

def _start_ball(state):
    if state['completed']:
        raise ConflictError('The match is complete. No further scoring is allowed.')
    prompt = pending_prompt(state)
    if prompt is not None:
        raise ScoringBlocked(prompt)
    return copy.deepcopy(state)


def _swap_strike(cricket):
    batting = cricket['batting']
    batting['striker'], batting['nonStriker'] = batting['nonStriker'], batting['striker']


def record_run(state, runs):
    if not isinstance(runs, int) or isinstance(runs, bool) or runs not in RUN_VALUES:
        raise ValidationError(f'Runs must be one of {", ".join(str(r) for r in RUN_VALUES)}.')
    state = _start_ball(state)
    cricket = state['cricketData']
    side = cricket[batting_side(cricket)]
    striker = cricket['batting']['striker']
    bowling = cricket['bowling']

    side['runs'] += runs
    side['balls'] += 1
    striker['runs'] += runs
    striker['balls'] += 1
    bowling['runs'] += runs
    bowling['balls'] += 1
    cricket['thisOver'].append(str(runs))

    if runs % 2 == 1:
        _swap_strike(cricket)
    return _after_ball(state)


def record_wicket(state):
    state = _start_ball(state)
    cricket = state['cricketData']
    side = cricket[batting_side(cricket)]
    bowling = cricket['bowling']

    side['wickets'] += 1
    side['balls'] += 1
    # The dismissed batter still faced the ball
    cricket['batting']['striker']['balls'] += 1
    bowling['wickets'] += 1
    bowling['balls'] += 1
    cricket['thisOver'].append('W')

    state['prompts'].append(PROMPT_NEW_BATTER)
    state['batterSlot'] = 'striker'
    return _after_ball(state)


def record_extra(state, kind):
    """A wide or no-ball: one run to the total, no legal delivery."""
    if isinstance(kind, int) and not isinstance(kind, bool):
        kind = EXTRA_CODES.get(kind)
    if not isinstance(kind, str) or kind not in EXTRAS:
        raise ValidationError("Extra must be 'wide' or 'no_ball'.")
    state = _start_ball(state)
    cricket = state['cricketData']
    cricket[batting_side(cricket)]['runs'] += 1
    cricket['bowling']['runs'] += 1
    cricket['thisOver'].append(EXTRAS[kind])
    return _after_ball(state)


def apply_ball(state, event):
    """Dispatches one console event: {'type': 'run'|'wicket'|'extra', ...}."""
    if not isinstance(event, dict):
        raise ValidationError('Ball event must be an object.')
    kind = event.get('type')
    if kind == 'run':
        return record_run(state, event.get('runs'))
    if kind == 'wicket':
        return record_wicket(state)
    if kind == 'extra':
        return record_extra(state, event.get('extra'))
    raise ValidationError("Ball event type must be 'run', 'wicket' or 'extra'.")


def _after_ball(state):
    cricket = state['cricketData']
    side = cricket[batting_side(cricket)]

    over_done = side['balls'] >= BALLS_PER_OVER
    if over_done:
        side['overs'] += 1
        side['balls'] = 0
        bowling = cricket['bowling']
        bowling['overs'] += 1
        bowling['balls'] = 0
        cricket['thisOver'] = []
        _swap_strike(cricket)
        # A wicket on the last ball: the new batter walks in at the far end
        if PROMPT_NEW_BATTER in state['prompts']:
            state['batterSlot'] = 'nonStriker'

    if cricket['innings'] == 1:
        if cricket['team1']['overs'] >= OVERS_PER_INNINGS:
            return _start_second_innings(state)
    elif chase_finished(cricket):
        state['completed'] = True
        state['prompts'] = []
        return state

    if over_done:
        state['prompts'].append(PROMPT_NEW_BOWLER)
    return state


def _start_second_innings(state):
    cricket = state['cricketData']
    cricket['innings'] = 2
    cricket['target'] = cricket['team1']['runs'] + 1
    cricket['team2'] = default_innings()
    cricket['thisOver'] = []
    cricket['bowling'] = default_bowling()
    cricket['batting'] = default_batting()
    state['prompts'] = [PROMPT_BATSMEN]
    state['batterSlot'] = 'striker'
    return state


# --- SYNC ---

def sync_patch(state):
    """
    The single update that commits the working copy to the match. The
    outstanding prompts travel with the document so a reloaded copy stays
    blocked on the same question.
    """
    cricket = copy.deepcopy(state['cricketData'])
    cricket['pendingPrompts'] = [] if state['completed'] else list(state['prompts'])
    cricket['batterSlot'] = state['batterSlot']
    return {
        'cricketData': cricket,
        'scoreTeam1': cricket['team1']['runs'],
        'scoreTeam2': cricket['team2']['runs'],
        'status': 'completed' if state['completed'] else 'live',
    }
