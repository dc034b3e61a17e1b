"""Vérification syntaxique des manifestes (collections de documents YAML).

Seule la validité syntaxique est contrôlée ici; la sémantique des manifestes est hors périmètre.
"""

from __future__ import annotations

from typing import Any

import yaml


class ManifestSyntaxError(Exception):
    """Le contenu n'est pas une collection de documents YAML valide."""

    def __init__(self, diagnostic: str) -> None:
        super().__init__(diagnostic)
        self.diagnostic = diagnostic


def parse_all(data: bytes | str) -> list[Any]:
    """Parse tous les documents du flux et les retourne.

    Raises:
        ManifestSyntaxError: si le parseur rejette le contenu.
    """
    try:
        return list(yaml.safe_load_all(data))
    except yaml.YAMLError as err:
        raise ManifestSyntaxError(str(err)) from err
