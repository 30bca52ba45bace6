from ulid import ULID


def new_ulid(prefix: str | None = None) -> str:
    value = str(ULID()).lower()
    return f"{prefix}{value}" if prefix else value


def new_transmission_id() -> str:
    return new_ulid("tx_")


def new_relay_id() -> str:
    return new_ulid("rl_")


def new_stream_id() -> str:
    return new_ulid("st_")
