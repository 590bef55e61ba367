import os

from draper import unsafe_positions

# ============================================================================
# HELPERS
# ============================================================================

def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def column_type(length: int, prefix_length: int = 0) -> str:
    """Integer column type able to hold an obfuscated id of the given width"""
    # Max value for int is 2147483647, so anything of 10 digits or more needs bigint
    return "bigint" if length + prefix_length >= 10 else "int"

# ============================================================================
# CONFIGURATION CLASS
# ============================================================================

class Config:
    """Centralized configuration with validation"""

    # Cipher
    SPIN: int = int(os.getenv("DD_SPIN", "0"))
    LENGTH: int = int(os.getenv("DD_LENGTH", "10"))
    STRICT: bool = _env_bool("DD_STRICT")
    DRAWN_TABLES: bool = _env_bool("DD_DRAWN_TABLES")

    # Random prefix
    PREFIX_LENGTH: int = int(os.getenv("DD_PREFIX_LENGTH", "0"))
    PREFIX_POSITION: str = os.getenv("DD_PREFIX_POSITION", "before")

    # Value source / target
    SOURCE: str = os.getenv("DD_SOURCE", "sequence")
    SEQUENCE_NAME: str = os.getenv("DD_SEQUENCE_NAME", "records_id_seq")
    TARGET_FIELD: str = os.getenv("DD_TARGET_FIELD", "public_id")

    # Database
    DB_FILE: str = os.getenv("DD_DB_FILE", "draper.db")

    # Rate limiting
    RATE_LIMIT_CREATE: str = os.getenv("RATE_LIMIT_CREATE", "30/minute")
    RATE_LIMIT_CODEC: str = os.getenv("RATE_LIMIT_CODEC", "120/minute")

    # Limits
    MAX_LENGTH: int = 18
    PREFIX_POSITIONS: tuple[str, ...] = ("before", "after")
    SOURCES: tuple[str, ...] = ("sequence", "column")
    RECORD_COLUMNS: tuple[str, ...] = ("id", "source_value", "label", "created_at")

    @classmethod
    def validate(cls):
        """Validate configuration on startup"""
        if cls.LENGTH < 0 or cls.LENGTH > cls.MAX_LENGTH:
            raise ValueError(f"LENGTH must be between 0 and {cls.MAX_LENGTH}")
        if cls.PREFIX_LENGTH < 0:
            raise ValueError("PREFIX_LENGTH must not be negative")
        if cls.PREFIX_POSITION not in cls.PREFIX_POSITIONS:
            raise ValueError(f"PREFIX_POSITION must be one of {cls.PREFIX_POSITIONS}")
        if cls.SOURCE not in cls.SOURCES:
            raise ValueError(f"SOURCE must be one of {cls.SOURCES}")
        if not cls.TARGET_FIELD.isidentifier():
            raise ValueError("TARGET_FIELD must be a valid column name")
        if cls.TARGET_FIELD.lower() in cls.RECORD_COLUMNS:
            raise ValueError(f"TARGET_FIELD must not reuse a records column: {cls.RECORD_COLUMNS}")
        if not cls.DRAWN_TABLES and unsafe_positions(cls.SPIN, cls.LENGTH):
            raise ValueError(
                f"SPIN {cls.SPIN} is not reversible at LENGTH {cls.LENGTH}; "
                "pick another spin or enable DD_DRAWN_TABLES"
            )

# ============================================================================
# SINGLETON INSTANCE & DERIVED CONSTANTS
# ============================================================================

config = Config()

# --- Expose class attributes as module constants for convenience ---
for attr in [a for a in dir(config) if not a.startswith('__') and not callable(getattr(config, a))]:
    globals()[attr] = getattr(config, attr)
