"""Constantes partagées pour éviter les valeurs magiques dans le code."""

from enum import Enum


class Actions(str, Enum):
    """Actions vérifiées par la passerelle d'autorisation."""

    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE_VERSION = "manageVersion"


class ResourceTypes(str, Enum):
    """Types de ressources soumis à autorisation."""

    CHANNEL = "channel"


# Formats de manifeste acceptés
MANIFEST_FORMATS = frozenset({"yaml", "application/yaml"})

# Vecteur d'initialisation AES (octets)
IV_SIZE = 16

# Lecture par blocs des uploads streamés
UPLOAD_CHUNK_SIZE = 64 * 1024

DEFAULT_CASCADE_CONCURRENCY = 5
