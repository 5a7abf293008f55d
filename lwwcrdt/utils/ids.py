import random
import uuid

_RANDOM = random.Random()


def new_id(rng: random.Random | None = None) -> str:
    """Return a random UUID4 string drawn from ``rng``.

    Passing a seeded ``random.Random`` makes id assignment reproducible,
    which simulation replays rely on. Without one a module-level
    generator is used.
    """
    source = rng if rng is not None else _RANDOM
    return str(uuid.UUID(int=source.getrandbits(128), version=4))
