from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from identigraph.app import (
    build_auto_merge_controller,
    create_organization,
    enrich_contact_profile,
    ingest_signal_payloads,
    list_duplicate_groups,
    load_auto_merge_stats,
    load_identity_graph,
    merge_duplicate_contacts,
    resolve_contact,
    start_cooldown_sweeper,
)
from identigraph.config import configure_logging
from identigraph.domain.identity import IdentitySignal

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Resolve and deduplicate contact identities")
    subparsers = parser.add_subparsers(dest="command", required=True)

    org = subparsers.add_parser("org", help="Organization management commands")
    org_sub = org.add_subparsers(dest="org_command", required=True)
    org_create = org_sub.add_parser("create", help="Create an organization")
    org_create.add_argument("--name", type=str, required=True, help="Organization name")

    resolve = subparsers.add_parser("resolve", help="Resolve one signal to a contact and company")
    _add_organization_argument(resolve)
    resolve.add_argument("--email", type=str, help="Email address seen on the signal")
    resolve.add_argument("--github", type=str, help="GitHub username")
    resolve.add_argument("--npm", type=str, help="npm username")
    resolve.add_argument("--company", type=str, help="Free-text company name")
    resolve.add_argument("--domain", type=str, help="Company domain")
    resolve.add_argument("--github-org", type=str, help="GitHub organization login")
    resolve.add_argument("--first-name", type=str, help="First name for a new contact")
    resolve.add_argument("--last-name", type=str, help="Last name for a new contact")
    resolve.add_argument(
        "--auto-merge",
        action="store_true",
        help="Merge the resolved contact into a confidently matching one",
    )

    ingest = subparsers.add_parser("ingest", help="Resolve connector payloads from a JSONL file")
    _add_organization_argument(ingest)
    ingest.add_argument("path", type=str, help="JSON-lines file with one payload per line, or -")
    ingest.add_argument(
        "--auto-merge",
        action="store_true",
        help="Merge resolved actors into confidently matching contacts",
    )

    duplicates = subparsers.add_parser("duplicates", help="List likely duplicate contacts")
    _add_organization_argument(duplicates)
    duplicates.add_argument(
        "--limit",
        type=int,
        help="Maximum number of groups to report (defaults to config)",
    )

    merge = subparsers.add_parser("merge", help="Merge duplicate contacts into a primary")
    _add_organization_argument(merge)
    merge.add_argument("--primary", type=str, required=True, help="Surviving contact id")
    merge.add_argument(
        "--duplicate",
        type=str,
        action="append",
        required=True,
        help="Contact id to merge away (repeatable)",
    )

    graph = subparsers.add_parser("graph", help="Show the identity graph of a contact")
    _add_organization_argument(graph)
    graph.add_argument("--contact", type=str, required=True, help="Contact id")

    stats = subparsers.add_parser("auto-merge-stats", help="Show auto-merge history")
    _add_organization_argument(stats)

    enrich = subparsers.add_parser("enrich", help="Enrich a contact from email and GitHub")
    _add_organization_argument(enrich)
    enrich.add_argument("--contact", type=str, required=True, help="Contact id")

    return parser.parse_args(list(argv))


def _add_organization_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--organization-id",
        type=str,
        required=True,
        help="Organization (tenant) id",
    )


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _read_payloads(path: str) -> Iterator[object]:
    stream = sys.stdin if path == "-" else open(path, encoding="utf-8")  # noqa: SIM115
    try:
        for line_number, line in enumerate(stream, start=1):
            if not line.strip():
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid JSON on line {line_number} of {path}") from exc
    finally:
        if stream is not sys.stdin:
            stream.close()


def _run(args: argparse.Namespace) -> None:  # noqa: C901, PLR0912
    if args.command == "org" and args.org_command == "create":
        organization = create_organization(name=args.name)
        log.info("Created organization %s", organization.id)
        return

    organization_id = _parse_uuid(args.organization_id)

    if args.command == "resolve":
        signal_ = IdentitySignal(
            email=args.email,
            github_username=args.github,
            npm_username=args.npm,
            company_name=args.company,
            company_domain=args.domain,
            github_org=args.github_org,
            first_name=args.first_name,
            last_name=args.last_name,
        )
        resolved = resolve_contact(
            organization_id,
            signal_,
            auto_merge=build_auto_merge_controller() if args.auto_merge else None,
        )
        log.info(
            "contact=%s company=%s source=%s confidence=%.2f new=%s",
            resolved.contact_id,
            resolved.company_id,
            resolved.source,
            resolved.confidence,
            resolved.is_new,
        )
    elif args.command == "ingest":
        controller = build_auto_merge_controller() if args.auto_merge else None
        sweeper = start_cooldown_sweeper(controller.cooldown) if controller else None
        try:
            results = ingest_signal_payloads(
                organization_id, _read_payloads(args.path), auto_merge=controller
            )
        finally:
            if sweeper is not None:
                sweeper.shutdown()
        for result in results:
            log.info("actor=%s account=%s", result.actor_id, result.account_id)
    elif args.command == "duplicates":
        groups = list_duplicate_groups(organization_id, limit=args.limit)
        for group in groups:
            log.info(
                "%s (%s <%s>): %s",
                group.primary_contact_id,
                group.primary_name,
                group.primary_email or "-",
                ", ".join(
                    f"{candidate.contact_id} ({candidate.overall_confidence:.2f})"
                    for candidate in group.duplicates
                ),
            )
        log.info("Found %s duplicate groups", len(groups))
    elif args.command == "merge":
        result = merge_duplicate_contacts(
            organization_id,
            _parse_uuid(args.primary),
            [_parse_uuid(value) for value in args.duplicate],
        )
        for error in result.errors:
            log.warning("Merge error: %s", error)
        log.info("Merged %s contacts into %s", result.merged, args.primary)
    elif args.command == "graph":
        graph = load_identity_graph(organization_id, _parse_uuid(args.contact))
        company = f"{graph.company.name} ({graph.company.domain})" if graph.company else "-"
        log.info("%s <%s> at %s", graph.contact_name, graph.contact_email or "-", company)
        for entry in graph.identities:
            log.info(
                "  %s %s confidence=%.2f verified=%s",
                entry.type,
                entry.value,
                entry.confidence,
                entry.verified,
            )
    elif args.command == "auto-merge-stats":
        stats = load_auto_merge_stats(organization_id)
        log.info("Auto-merges: total=%s, last 24h=%s", stats.total_auto_merges, stats.last_24h)
        for merge in stats.recent_merges:
            log.info(
                "  %s merged into %s (%.2f) at %s",
                merge.merged,
                merge.primary,
                merge.confidence,
                merge.timestamp.isoformat(),
            )
    elif args.command == "enrich":
        enrichment = enrich_contact_profile(organization_id, _parse_uuid(args.contact))
        log.info(
            "Enrichment finished: identities_added=%s, company_resolved=%s, sources=%s",
            enrichment.identities_added,
            enrichment.company_resolved,
            ", ".join(enrichment.enrichments) or "-",
        )
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command != "org":
            _parse_uuid(parsed_args.organization_id)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        _run(parsed_args)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()
