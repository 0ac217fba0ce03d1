DONATION_STATES = ["available", "claimed", "delivered", "cancelled"]

AVAILABLE, CLAIMED, DELIVERED, CANCELLED = DONATION_STATES

TRANSITIONS = {
    (AVAILABLE, CLAIMED):   {"roles": ["ngo"]},
    (CLAIMED,   DELIVERED): {"roles": ["ngo"]},

    (AVAILABLE, CANCELLED): {"roles": ["admin"]},
    (CLAIMED,   CANCELLED): {"roles": ["admin"]},
}

TERMINAL_STATES = {DELIVERED, CANCELLED}

def can_transition(src: str, dst: str, role: str) -> bool:
    rule = TRANSITIONS.get((src, dst))
    if not rule:
        return False
    return role in rule["roles"]

def sources_for(dst: str) -> tuple[str, ...]:
    """States from which ``dst`` is reachable in one step."""
    return tuple(src for (src, to) in TRANSITIONS if to == dst)
