"""
Garbage collection des versions orphelines d'un tenant.

Une coupure entre l'écriture d'un enregistrement de version et l'ajout de son résumé dans l'index
du channel (ou entre le retrait du résumé et la suppression de l'enregistrement) laisse un
enregistrement qu'aucun channel ne référence. Ce script les liste et, avec `--delete`, supprime
leur payload puis l'enregistrement. Les index des channels ne sont jamais modifiés.
"""

from __future__ import annotations

import argparse
from datetime import timedelta

from channelstore.core.container import get_container


def main(argv: list[str] | None = None) -> int:
    """
    Point d'entrée principal du garbage collector.

    Returns:
        int: nombre de versions orphelines trouvées.
    """
    parser = argparse.ArgumentParser()
    parser.add_argument("org_id", help="Organization identifier to scan")
    parser.add_argument(
        "--min-age-minutes",
        type=int,
        default=10,
        help="Ignore records younger than this (creation in progress)",
    )
    parser.add_argument("--delete", action="store_true", help="Delete the orphans found")
    args = parser.parse_args(argv)

    store = get_container().store
    orphans = store.find_orphan_versions(
        args.org_id, min_age=timedelta(minutes=args.min_age_minutes)
    )
    for version in orphans:
        print(
            f"orphan org={version.org_id} channel={version.channel_uuid} "
            f"version={version.uuid} name={version.name} location={version.location.value}"
        )
        if args.delete:
            store.discard_orphan_version(version)
    print(f"orphans={len(orphans)} deleted={len(orphans) if args.delete else 0}")
    return len(orphans)


if __name__ == "__main__":  # pragma: no cover - script entry
    main()
