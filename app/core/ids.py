import uuid

# one prefix per table: usr, key, lst, req, dlv, aud, idm
ID_PREFIXES = frozenset({"usr", "key", "lst", "req", "dlv", "aud", "idm"})


def gen_id(prefix: str) -> str:
    if prefix not in ID_PREFIXES:
        raise ValueError(f"Unknown id prefix: {prefix}")
    return f"{prefix}_{uuid.uuid4().hex}"
