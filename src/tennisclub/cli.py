"""Command-line interface for tennisclub."""

import logging

import click

from tennisclub import __version__


def _open_session(ctx):
    from tennisclub.storage import DatabaseManager

    db = DatabaseManager(ctx.obj["config"]["database"])
    db.create_tables()
    return db.get_session()


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", required=False, help="Path to config YAML file")
@click.option("--db", "db_path", required=False, help="SQLite database path (overrides config)")
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, config_path: str, db_path: str, verbose: bool):
    """Tennis club tournament manager - brackets, results and standings."""
    from tennisclub.config_loader import ConfigError, load_and_validate_config

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = load_and_validate_config(config_path)
    except ConfigError as e:
        click.echo(f"[ERROR] Configuration Error: {e}", err=True)
        raise click.Abort()

    if db_path:
        cfg["database"] = db_path

    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


@cli.command()
@click.pass_context
def init_db(ctx):
    """Create the database tables."""
    from tennisclub.storage import DatabaseManager

    db = DatabaseManager(ctx.obj["config"]["database"])
    db.create_tables()
    click.echo(f"[SUCCESS] Database ready: {db.db_path}")


@cli.command()
@click.option("--name", required=True, help="Tournament name")
@click.option("--type", "type_", type=click.Choice(["singles", "doubles"]), default="singles")
@click.option(
    "--format",
    "format_",
    type=click.Choice(["round_robin", "single_elimination", "group_knockout"]),
    required=True,
)
@click.option("--groups-count", type=int, help="Number of groups (group_knockout)")
@click.option("--advance-per-group", type=int, help="Qualifiers per group (group_knockout)")
@click.option("--sets-to-win", type=int, help="Sets needed to win a match")
@click.pass_context
def create_tournament(ctx, name, type_, format_, groups_count, advance_per_group, sets_to_win):
    """Create a new tournament.

    Example:
        tennisclub create-tournament --name "Club Championship" --format group_knockout --groups-count 4
    """
    from dataclasses import replace

    from tennisclub.models import TournamentFormat, TournamentType
    from tennisclub.storage import TournamentRepository

    settings = ctx.obj["config"]["tournament_defaults"]
    overrides = {
        key: value
        for key, value in (
            ("groups_count", groups_count),
            ("advance_per_group", advance_per_group),
            ("sets_to_win", sets_to_win),
        )
        if value is not None
    }
    for key, value in overrides.items():
        if value < 1:
            click.echo(f"[ERROR] {key} must be a positive integer", err=True)
            raise click.Abort()
    settings = replace(settings, **overrides)

    session = _open_session(ctx)
    tournament = TournamentRepository(session).create(
        name, TournamentType(type_), TournamentFormat(format_), settings
    )
    click.echo(f"[SUCCESS] Created tournament {tournament.name}")
    click.echo(f"  id: {tournament.id}")


@cli.command()
@click.pass_context
def list_tournaments(ctx):
    """List all tournaments."""
    from tennisclub.i18n import get_string
    from tennisclub.storage import TournamentRepository, to_tournament

    lang = ctx.obj["config"]["lang"]
    session = _open_session(ctx)
    repo = TournamentRepository(session)
    tournaments = repo.get_all()

    if not tournaments:
        click.echo("[INFO] No tournaments yet")
        return

    for t_orm in tournaments:
        tournament = to_tournament(t_orm)
        label = get_string(f"tournament.formats.{tournament.format.value}", lang)
        click.echo(
            f"  {tournament.id}  {tournament.name} - {label}, {tournament.status.value}, "
            f"{repo.count_participants(tournament.id)} participants"
        )


@cli.command()
@click.option("--tournament", "tournament_id", required=True, help="Tournament id")
@click.option("--first-name", required=True)
@click.option("--last-name", required=True)
@click.option("--partner-first-name", help="Partner first name (doubles)")
@click.option("--partner-last-name", help="Partner last name (doubles)")
@click.option("--user-id", help="Club member id")
@click.option("--group", "group_number", type=int, help="Group number (group_knockout)")
@click.option("--seed", type=int, help="Seed (1 = best)")
@click.pass_context
def add_participant(
    ctx, tournament_id, first_name, last_name, partner_first_name, partner_last_name, user_id, group_number, seed
):
    """Register a player (or a doubles pair) for a tournament."""
    from sqlalchemy.exc import IntegrityError

    from tennisclub.models import Participant
    from tennisclub.storage import ParticipantRepository, TournamentRepository

    session = _open_session(ctx)
    if TournamentRepository(session).get_by_id(tournament_id) is None:
        click.echo(f"[ERROR] Tournament {tournament_id} not found", err=True)
        raise click.Abort()

    participant = Participant(
        id="",
        first_name=first_name,
        last_name=last_name,
        partner_first_name=partner_first_name,
        partner_last_name=partner_last_name,
        user_id=user_id,
        group_number=group_number,
        seed=seed,
    )
    try:
        created = ParticipantRepository(session).create(participant, tournament_id)
    except IntegrityError:
        session.rollback()
        click.echo("[ERROR] User is already a participant", err=True)
        raise click.Abort()

    click.echo(f"[SUCCESS] Added {participant.display_name}")
    click.echo(f"  id: {created.id}")


@cli.command()
@click.option("--tournament", "tournament_id", required=True, help="Tournament id")
@click.pass_context
def assign_groups(ctx, tournament_id):
    """Assign group numbers by snake seeding."""
    from tennisclub.group_builder import assign_groups as snake_assign
    from tennisclub.storage import ParticipantRepository
    from tennisclub.tournament_service import SchedulingError, load_participants, load_tournament

    session = _open_session(ctx)
    try:
        tournament = load_tournament(session, tournament_id)
        participants = load_participants(session, tournament_id)
        assigned = snake_assign(participants, tournament.settings.groups_count)
    except (SchedulingError, ValueError) as e:
        click.echo(f"[ERROR] {e}", err=True)
        raise click.Abort()

    repo = ParticipantRepository(session)
    for participant in assigned:
        repo.update(participant.id, group_number=participant.group_number, seed=participant.seed)

    for participant in sorted(assigned, key=lambda p: p.group_number):
        click.echo(f"  {participant.group_number}: {participant.display_name}")
    click.echo(f"[SUCCESS] Assigned {len(assigned)} participants to {tournament.settings.groups_count} groups")


@cli.command()
@click.option("--tournament", "tournament_id", required=True, help="Tournament id")
@click.option("--bye-policy", type=click.Choice(["confirm", "auto_advance"]), help="Overrides config")
@click.pass_context
def generate_matches(ctx, tournament_id, bye_policy):
    """(Re)generate all matches of a tournament. Existing matches are replaced."""
    from tennisclub.models import ByePolicy
    from tennisclub.tournament_service import SchedulingError
    from tennisclub.tournament_service import generate_matches as generate

    policy = ByePolicy(bye_policy) if bye_policy else ctx.obj["config"]["bye_policy"]
    session = _open_session(ctx)
    try:
        matches = generate(session, tournament_id, bye_policy=policy)
    except SchedulingError as e:
        click.echo(f"[ERROR] {e}", err=True)
        raise click.Abort()

    click.echo(f"[SUCCESS] Generated {len(matches)} matches")


@cli.command()
@click.option("--tournament", "tournament_id", required=True, help="Tournament id")
@click.option("--participant", "participant_ids", multiple=True, required=True, help="Qualifier id, in seed order")
@click.pass_context
def build_knockout(ctx, tournament_id, participant_ids):
    """Build the knockout stage of a group + knockout tournament.

    Example:
        tennisclub build-knockout --tournament T --participant A1 --participant B1 --participant A2 --participant B2
    """
    from tennisclub.tournament_service import SchedulingError, generate_knockout_stage

    session = _open_session(ctx)
    try:
        matches = generate_knockout_stage(
            session, tournament_id, list(participant_ids), bye_policy=ctx.obj["config"]["bye_policy"]
        )
    except SchedulingError as e:
        click.echo(f"[ERROR] {e}", err=True)
        raise click.Abort()

    click.echo(f"[SUCCESS] Knockout stage with {len(matches)} matches")


@cli.command()
@click.option("--tournament", "tournament_id", required=True, help="Tournament id")
@click.option("--match", "match_id", required=True, help="Match id")
@click.option("--score", required=True, help='Score, e.g. "6-4, 3-6, 7-5"')
@click.option("--winner", "winner_id", required=True, help="Winning participant id")
@click.pass_context
def record_result(ctx, tournament_id, match_id, score, winner_id):
    """Enter the result of a match."""
    from tennisclub.tournament_service import SchedulingError, load_tournament
    from tennisclub.tournament_service import record_result as record
    from tennisclub.validation import ValidationError

    cfg = ctx.obj["config"]
    session = _open_session(ctx)
    try:
        sets_to_win = None
        if cfg["strict_scores"]:
            sets_to_win = load_tournament(session, tournament_id).settings.sets_to_win
        update = record(session, tournament_id, match_id, score, winner_id, sets_to_win=sets_to_win)
    except (SchedulingError, ValidationError) as e:
        click.echo(f"[ERROR] {e}", err=True)
        raise click.Abort()

    click.echo("[SUCCESS] Result saved")
    if update:
        click.echo(f"  Winner moves to match {update.match_id}")


@cli.command()
@click.option("--tournament", "tournament_id", required=True, help="Tournament id")
@click.option("--match", "match_id", required=True, help="Match id")
@click.pass_context
def confirm_bye(ctx, tournament_id, match_id):
    """Confirm a bye: the lone participant advances."""
    from tennisclub.tournament_service import confirm_bye as confirm
    from tennisclub.validation import ValidationError

    session = _open_session(ctx)
    try:
        update = confirm(session, tournament_id, match_id)
    except ValidationError as e:
        click.echo(f"[ERROR] {e}", err=True)
        raise click.Abort()

    click.echo("[SUCCESS] Bye confirmed")
    if update:
        click.echo(f"  Winner moves to match {update.match_id}")


@cli.command()
@click.option("--match", "match_id", required=True, help="Match id")
@click.option("--date", "scheduled", type=click.DateTime(formats=["%Y-%m-%d"]), help="Date, omit to clear")
@click.pass_context
def schedule_match(ctx, match_id, scheduled):
    """Set the planned date of a match."""
    from tennisclub.tournament_service import schedule_match as schedule

    session = _open_session(ctx)
    if not schedule(session, match_id, scheduled.date() if scheduled else None):
        click.echo(f"[ERROR] Match {match_id} not found", err=True)
        raise click.Abort()
    click.echo("[SUCCESS] Schedule updated")


@cli.command()
@click.option("--tournament", "tournament_id", required=True, help="Tournament id")
@click.pass_context
def show_matches(ctx, tournament_id):
    """List matches by stage and round."""
    from tennisclub.bracket import get_round_name
    from tennisclub.i18n import get_string
    from tennisclub.models import MatchStage, TournamentFormat
    from tennisclub.tournament_service import SchedulingError, load_matches, load_participants, load_tournament

    lang = ctx.obj["config"]["lang"]
    session = _open_session(ctx)
    try:
        tournament = load_tournament(session, tournament_id)
    except SchedulingError as e:
        click.echo(f"[ERROR] {e}", err=True)
        raise click.Abort()

    matches = load_matches(session, tournament_id)
    if not matches:
        click.echo(get_string("tournament.no_matches", lang))
        return

    names = {p.id: p.display_name for p in load_participants(session, tournament_id)}
    is_bracket = tournament.format != TournamentFormat.ROUND_ROBIN
    bracket_rounds = sorted({m.round for m in matches if m.stage == MatchStage.KNOCKOUT}) if is_bracket else []

    current = None
    for match in matches:
        round_label = get_string("tournament.round", lang, number=match.round)
        if match.stage == MatchStage.GROUP:
            header = f"{get_string('tournament.group', lang, number=match.group_number)} - {round_label}"
        elif is_bracket:
            header = get_round_name(bracket_rounds.index(match.round), len(bracket_rounds), lang)
        else:
            header = round_label
        if header != current:
            click.echo(f"\n{header}")
            current = header

        # Empty first-round bracket slots are byes, later ones are still open
        is_first_bracket_round = (
            match.stage == MatchStage.KNOCKOUT and bool(bracket_rounds) and match.round == bracket_rounds[0]
        )
        empty = get_string("tournament.bye" if is_first_bracket_round else "tournament.tbd", lang)
        p1 = names.get(match.participant1_id, empty)
        p2 = names.get(match.participant2_id, empty)
        score = match.score or match.status.value
        click.echo(f"  [{match.id}] {p1} - {p2}  {score}")


@cli.command()
@click.option("--tournament", "tournament_id", required=True, help="Tournament id")
@click.pass_context
def standings(ctx, tournament_id):
    """Show current standings."""
    from tennisclub.i18n import get_string
    from tennisclub.tournament_service import SchedulingError, get_standings

    lang = ctx.obj["config"]["lang"]
    session = _open_session(ctx)
    try:
        report = get_standings(session, tournament_id)
    except SchedulingError as e:
        click.echo(f"[ERROR] {e}", err=True)
        raise click.Abort()

    tables = []
    if report.standings is not None:
        tables.append((None, report.standings))
    if report.groups is not None:
        tables.extend(
            (get_string("tournament.group", lang, number=g.group_number), g.standings) for g in report.groups
        )

    if not tables:
        click.echo("[INFO] Single elimination tournaments have no standings table")
        return

    header = "  ".join(
        get_string(f"standings.{key}", lang)
        for key in ("position", "participant", "played", "won", "lost", "sets", "games", "points")
    )
    for title, rows in tables:
        if title:
            click.echo(f"\n{title}")
        click.echo(header)
        for position, row in enumerate(rows, start=1):
            click.echo(
                f"  {position}. {row.participant.display_name}  {row.played}  {row.won}  {row.lost}  "
                f"{row.sets_won}:{row.sets_lost}  {row.games_won}:{row.games_lost}  {row.points}"
            )


if __name__ == "__main__":
    cli()
