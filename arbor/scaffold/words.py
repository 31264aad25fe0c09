"""Word lists for readable per-worktree database suffixes."""

import random
from typing import Optional

ADJECTIVES = [
    "amber", "ancient", "autumn", "bold", "brave", "breezy", "bright", "calm",
    "clever", "cosmic", "crimson", "crisp", "curious", "dapper", "dusty", "eager",
    "early", "fancy", "fierce", "fluffy", "frosty", "gentle", "gilded", "glad",
    "golden", "grand", "happy", "hidden", "hollow", "humble", "icy", "jolly",
    "keen", "lively", "lucky", "mellow", "misty", "nimble", "noble", "polished",
    "proud", "quick", "quiet", "rapid", "rustic", "shiny", "silent", "silver",
    "snowy", "solar", "stormy", "sunny", "swift", "tidy", "vivid", "wandering",
    "wild", "windy", "wise", "witty", "young", "zesty",
]

NOUNS = [
    "anchor", "badger", "beacon", "birch", "bison", "brook", "canyon", "cedar",
    "comet", "condor", "coral", "crane", "dune", "eagle", "ember", "falcon",
    "fern", "fjord", "forest", "fox", "glacier", "grove", "harbor", "hawk",
    "heron", "island", "lagoon", "lark", "lotus", "maple", "meadow", "meteor",
    "moon", "moss", "nebula", "oak", "orchid", "otter", "owl", "panda",
    "pebble", "pine", "planet", "prairie", "raven", "reef", "river", "robin",
    "sparrow", "spruce", "star", "summit", "thunder", "tiger", "valley", "willow",
    "wolf", "wren",
]


def generate_suffix(rng: Optional[random.Random] = None) -> str:
    """Return a random ``adjective_noun`` suffix such as ``misty_otter``."""
    chooser = rng or random
    return f"{chooser.choice(ADJECTIVES)}_{chooser.choice(NOUNS)}"
