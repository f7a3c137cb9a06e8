import random

from providers.interface import AccessLevel
from providers.memory_provider import MemoryProvider


class StepClock:
    """Fake clock that advances one second every time it is read."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        self.now += 1.0
        return self.now


def scenario_tree():
    """R contains F1 and S; S contains F2. Everything is shared."""
    provider = MemoryProvider()
    provider.add_folder("R")
    provider.add_file("F1", "R")
    provider.add_folder("S", "R")
    provider.add_file("F2", "S")
    for node_id in ("R", "F1", "S", "F2"):
        provider.share(node_id, editors=[f"ed-{node_id}@example.com"], viewers=[f"vw-{node_id}@example.com"],
                       anyone_with_link=AccessLevel.VIEW)
    return provider


def random_tree(seed, max_depth=4, max_children=3, max_files=3):
    """Random shared tree rooted at 'root'."""
    rng = random.Random(seed)
    provider = MemoryProvider()
    provider.add_folder("root")
    counter = [0]

    def grow(folder_id, depth):
        for _ in range(rng.randint(0, max_files)):
            counter[0] += 1
            file_id = f"file-{counter[0]}"
            provider.add_file(file_id, folder_id)
            provider.share(file_id, editors=[f"e{counter[0]}@example.com"],
                           anyone=AccessLevel.VIEW if rng.random() < 0.3 else AccessLevel.NONE)
        if depth >= max_depth:
            return
        for _ in range(rng.randint(0, max_children)):
            counter[0] += 1
            sub_id = f"folder-{counter[0]}"
            provider.add_folder(sub_id, folder_id)
            provider.share(sub_id, viewers=[f"v{counter[0]}@example.com"])
            grow(sub_id, depth + 1)

    grow("root", 0)
    return provider


def processed_ids(provider):
    """Ids the provider was asked to fetch for a reset, in call order."""
    return [node_id for op, node_id in provider.calls if op == "get_node"]


def balanced_tree(width=3, depth=2, files=3):
    """Every folder has `width` subfolders (down to `depth`) and `files` files."""
    provider = MemoryProvider()
    provider.add_folder("root")

    def grow(folder_id, level):
        for i in range(files):
            file_id = provider.add_file(f"{folder_id}/f{i}", folder_id)
            provider.share(file_id, viewers=[f"viewer{i}@example.com"])
        if level >= depth:
            return
        for i in range(width):
            sub_id = provider.add_folder(f"{folder_id}/d{i}", folder_id)
            provider.share(sub_id, editors=["team@example.com"], anyone_with_link=AccessLevel.VIEW)
            grow(sub_id, level + 1)

    grow("root", 0)
    return provider
