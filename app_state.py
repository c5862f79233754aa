from managed_dataset import ManagedDataset


class AppState:
    """Named datasets with one active at a time, in insertion order."""

    def __init__(self, datasets=None, active=None):
        self.datasets: dict[str, ManagedDataset] = {}
        self.order: list[str] = []
        self.active_name: str | None = None
        for ds in datasets or ():
            self.add(ds)
        if active is not None:
            self.set_active(active)

    def add(self, dataset: ManagedDataset) -> str:
        name = self._unique_name(dataset.metadata.name or "table")
        dataset.metadata.name = name
        self.datasets[name] = dataset
        self.order.append(name)
        if self.active_name is None:
            self.active_name = name
        return name

    def _unique_name(self, base: str) -> str:
        if base not in self.datasets:
            return base
        n = 2
        while f"{base} ({n})" in self.datasets:
            n += 1
        return f"{base} ({n})"

    def remove(self, name: str) -> bool:
        if name not in self.datasets:
            return False
        idx = self.order.index(name)
        del self.datasets[name]
        self.order.remove(name)
        if self.active_name == name:
            self.active_name = self.order[min(idx, len(self.order) - 1)] if self.order else None
        return True

    @property
    def active(self) -> ManagedDataset | None:
        if self.active_name is None:
            return None
        return self.datasets[self.active_name]

    def get_names(self) -> list[str]:
        return list(self.order)

    def set_active(self, name: str) -> bool:
        if name not in self.datasets:
            return False
        self.active_name = name
        return True

    def switch(self, delta: int) -> str | None:
        if not self.order:
            return None
        if self.active_name not in self.order:
            self.active_name = self.order[0]
        idx = self.order.index(self.active_name)
        self.active_name = self.order[(idx + delta) % len(self.order)]
        return self.active_name
