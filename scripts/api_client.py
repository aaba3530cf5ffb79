"""Lightweight REST client for the pysquad API."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import httpx


def build_request(raw: str) -> dict:
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid request JSON: {exc}") from exc


def main() -> None:
    parser = argparse.ArgumentParser(description="Interact with the pysquad REST API")
    parser.add_argument("base_url", help="Base URL of the API, e.g. http://localhost:8000")
    parser.add_argument("candidates", type=Path, nargs="?", help="Candidate CSV")
    parser.add_argument("--request", default="", help="JSON squad request (budget, quotas, ...)")
    parser.add_argument("--compare-greedy", action="store_true", help="Ask for the greedy comparison")
    parser.add_argument("--formation", default=None, help="Fetch a lineup for this formation after the run")
    parser.add_argument("--list-runs", action="store_true", help="List recent runs and exit")
    parser.add_argument("--get-run", metavar="RUN_ID", help="Fetch a specific run and exit")
    parser.add_argument("--export-run", metavar="RUN_ID", help="Download squad CSV for a run")
    parser.add_argument("--export-path", type=Path, help="Destination path for exported CSV")
    args = parser.parse_args()

    if args.list_runs or args.get_run or args.export_run:
        with httpx.Client(base_url=args.base_url) as client:
            if args.list_runs:
                resp = client.get("/runs")
                resp.raise_for_status()
                print(json.dumps(resp.json(), indent=2))
            if args.get_run:
                resp = client.get(f"/runs/{args.get_run}")
                if resp.status_code == 404:
                    raise SystemExit(f"run {args.get_run} not found")
                resp.raise_for_status()
                print(json.dumps(resp.json(), indent=2))
            if args.export_run:
                resp = client.get(f"/runs/{args.export_run}/export.csv")
                if resp.status_code == 404:
                    raise SystemExit(f"run {args.export_run} not found")
                resp.raise_for_status()
                if args.export_path:
                    args.export_path.write_text(resp.text)
                    print(f"CSV export saved to {args.export_path}")
                else:
                    print(resp.text)
        return

    if args.candidates is None:
        raise SystemExit("candidates file is required unless using --list-runs/--get-run/--export-run")

    squad_request = build_request(args.request)
    if args.compare_greedy:
        squad_request["compare_greedy"] = True
    files = {"candidates": (args.candidates.name, args.candidates.read_bytes(), "text/csv")}
    data = {"squad_request": json.dumps(squad_request)}

    with httpx.Client(base_url=args.base_url, timeout=None) as client:
        resp = client.post("/squads", files=files, data=data)
        if resp.status_code in (400, 422):
            raise SystemExit(f"squad request rejected: {resp.json().get('detail')}")
        resp.raise_for_status()
        payload = resp.json()
        print("Summary:", json.dumps(payload["summary"], indent=2))
        if payload.get("comparison"):
            print("Greedy comparison:", json.dumps(payload["comparison"], indent=2))
        print(f"Received {len(payload['players'])} players (run {payload['run_id']})")

        if args.formation:
            resp = client.get(f"/runs/{payload['run_id']}/lineups/{args.formation}")
            if resp.status_code in (404, 422):
                raise SystemExit(f"lineup unavailable: {resp.json().get('detail')}")
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    main()
