import secrets

TOKEN_BYTES = 16  # 32 hex chars


def generate_token() -> str:
    """Random access token: 16 bytes from the OS CSPRNG, upper-case hex."""
    return secrets.token_hex(TOKEN_BYTES).upper()


def canonical_token(raw: object) -> str:
    """Tokens are case-insensitive; the stored form is upper-case."""
    if raw is None:
        return ""
    return str(raw).strip().upper()
