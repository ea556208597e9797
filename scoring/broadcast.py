"""Read-side views for the public scoreboard. Nothing here is stored."""
from scoring.cricket import BALLS_PER_INNINGS, BALLS_PER_OVER, batting_side
from scoring.matches import list_matches
from utils.dates import now_iso

PUBLIC_STATUSES = ('live', 'completed')


def overs_display(overs, balls):
    return f'{overs}.{balls}'


def run_rate(runs, balls_bowled):
    if balls_bowled <= 0:
        return None
    return round(runs * BALLS_PER_OVER / balls_bowled, 2)


def cricket_display(cricket):
    """Scoreline, run rates and, while chasing, what is still required."""
    side_key = batting_side(cricket)
    side = cricket[side_key]
    balls_bowled = side['overs'] * BALLS_PER_OVER + side['balls']
    display = {
        'battingSide': side_key,
        'innings': cricket['innings'],
        'scoreline': f"{side['runs']}/{side['wickets']} ({overs_display(side['overs'], side['balls'])})",
        'runRate': run_rate(side['runs'], balls_bowled),
        'thisOver': list(cricket.get('thisOver') or []),
        'target': cricket.get('target'),
    }

    target = cricket.get('target')
    if cricket['innings'] == 2 and target is not None:
        runs_required = max(target - side['runs'], 0)
        balls_remaining = max(BALLS_PER_INNINGS - balls_bowled, 0)
        display['runsRequired'] = runs_required
        display['ballsRemaining'] = balls_remaining
        display['requiredRunRate'] = (
            round(runs_required * BALLS_PER_OVER / balls_remaining, 2) if balls_remaining else None
        )
    return display


def match_result(match):
    """
    Winner (or tie) of a completed match, or None while it is undecided.
    The winner is settled when the match completes, so a completed match
    without one is a tie or a declared draw.
    """
    if match['status'] != 'completed':
        return None
    if match['winner'] is None:
        return {'winner': None, 'winnerName': None, 'tie': True}
    return {'winner': match['winner'], 'winnerName': match['winnerName'], 'tie': False}


def serialize_match(match):
    """The stored match plus a `display` block computed at read time."""
    data = dict(match)
    display = {
        'scoreline': f"{match['scoreTeam1']} - {match['scoreTeam2']}",
        'result': match_result(match),
    }
    if match.get('cricketData'):
        display['cricket'] = cricket_display(match['cricketData'])
    data['display'] = display
    return data


def live_feed(conn, poll_interval=30):
    """Everything the public viewer needs on each poll."""
    matches = list_matches(conn, status='live', limit=None)
    return {
        'matches': [serialize_match(m) for m in matches],
        'pollInterval': poll_interval,
        'generatedAt': now_iso(),
    }
