from __future__ import annotations

from typing import Any, Callable, Iterable, Protocol

# A demo receives ``image_src`` plus the block's ``args`` as keyword arguments
# and returns an HTML fragment.
Demo = Callable[..., Any]


class DemoProvider(Protocol):
    def get(self, demo_type: str) -> Demo | None: ...

    def names(self) -> Iterable[str]: ...


class DemoRegistry:
    """Dictionary-backed ``DemoProvider``; create one per rendering context."""

    def __init__(self, demos: dict[str, Demo] | None = None) -> None:
        self._demos: dict[str, Demo] = dict(demos or {})

    def register(self, name: str, demo: Demo | None = None):
        if demo is not None:
            self._demos[name] = demo
            return demo

        def decorator(func: Demo) -> Demo:
            self._demos[name] = func
            return func

        return decorator

    def unregister(self, name: str) -> None:
        self._demos.pop(name, None)

    def get(self, demo_type: str) -> Demo | None:
        return self._demos.get(demo_type)

    def names(self) -> list[str]:
        return sorted(self._demos)

    def __contains__(self, name: object) -> bool:
        return name in self._demos

    def __len__(self) -> int:
        return len(self._demos)
