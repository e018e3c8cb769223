#!/usr/bin/env python3
import argparse
import asyncio
import sys
from typing import List, Optional, Sequence, Tuple

from core.logging import get_logger
from core.session_store import TokenStore
from predictions.session import PredictionSession
from providers.remote_store.base import RemoteStoreBase
from providers.remote_store.client import RemoteStoreClient

log = get_logger("cli")


def parse_pick(text: str) -> Tuple[int, str, str]:
    """'5:2-1' -> (5, '2', '1'). I punteggi restano stringhe: la coercizione è del buffer."""
    try:
        mid, score = text.split(":", 1)
        home, away = score.split("-", 1)
        return int(mid), home, away
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"formato atteso MATCH_ID:HOME-AWAY, ricevuto {text!r}") from e


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Pronostici torneo: login, stato e salvataggio in blocco")
    sub = p.add_subparsers(dest="command", required=True)

    for name in ("login", "register"):
        sp = sub.add_parser(name)
        sp.add_argument("username")
        sp.add_argument("password")

    sub.add_parser("logout")
    sub.add_parser("show", help="Partite, pronostici, lock e punti")

    sp = sub.add_parser("set", help="Modifica uno o più pronostici e salva")
    sp.add_argument("picks", nargs="+", type=parse_pick, metavar="MATCH_ID:HOME-AWAY")

    sub.add_parser("leaderboard")
    sub.add_parser("standings")
    return p


def _print_banners(session: PredictionSession) -> None:
    for b in session.banners():
        print(f"[{b.kind}] {b.text}")


def _print_state(session: PredictionSession) -> None:
    print(f"user={session.username} locked={session.locked} points={session.points.total}")
    if session.lock.next_kickoff:
        print(f"next kickoff: {session.lock.next_kickoff.isoformat()}")
    for m in session.matches:
        home, away = session.buffer.display_score(m.id)
        mark = "*" if m.id in session.buffer else " "
        line = f"{mark} #{m.id} [{m.stage}] {m.home_team_name} {home}:{away} {m.away_team_name}"
        if m.is_finished:
            line += f"  final {m.result_home}:{m.result_away}"
            pts = session.points.points_for(m.id)
            if pts is not None:
                line += f"  +{pts}"
        print(line)


async def _run(args: argparse.Namespace, store: Optional[RemoteStoreBase] = None) -> int:
    owned = store is None
    store = store or RemoteStoreClient()
    session = PredictionSession(store, TokenStore())
    try:
        if args.command in ("login", "register"):
            fn = session.login if args.command == "login" else session.register
            ok = await fn(args.username, args.password)
            _print_banners(session)
            if ok:
                print(f"logged in as {session.username}")
            return 0 if ok else 1

        if args.command == "logout":
            session.logout()
            print("logged out")
            return 0

        if not session.is_authenticated:
            print("not logged in: use 'login' or 'register'")
            return 2

        if args.command == "leaderboard":
            rows = await session.load_leaderboard()
            for pos, r in enumerate(rows, start=1):
                print(f"{pos}. {r.username} {r.total_points}")
            _print_banners(session)
            return 0 if not session.error else 1

        if args.command == "standings":
            rows = await session.load_group_standings()
            for r in rows:
                print(f"{r.group} {r.team} GF={r.goals_for} GA={r.goals_against} Pts={r.points}")
            _print_banners(session)
            return 0 if not session.error else 1

        ok = await session.bootstrap()
        if not ok:
            _print_banners(session)
            return 1

        if args.command == "show":
            _print_state(session)
            return 0

        # set
        picks: List[Tuple[int, str, str]] = args.picks
        if session.locked:
            print("Prediction window closed")
            return 1
        for mid, home, away in picks:
            if session.edit(mid, "home", home) is None or session.edit(mid, "away", away) is None:
                print(f"unknown match #{mid}")
                return 1
        result = await session.save()
        _print_banners(session)
        if result.ok:
            _print_state(session)
        return 0 if result.ok else 1
    finally:
        if owned and isinstance(store, RemoteStoreClient):
            await store.aclose()


def main(argv: Optional[Sequence[str]] = None, store: Optional[RemoteStoreBase] = None) -> int:
    args = build_parser().parse_args(argv)
    log.debug("cli command=%s", args.command)
    return asyncio.run(_run(args, store))


if __name__ == "__main__":
    sys.exit(main())
