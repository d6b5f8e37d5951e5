"""Live-sequence primitives shared by the analyzers."""

from eco_mode.streams.cell import ValueCell
from eco_mode.streams.observable import Observable, Observer, Subscription
from eco_mode.streams.operators import combine_latest, from_event, merge, on_error_return
from eco_mode.streams.shared import SharedReplay

__all__ = [
    "Observable",
    "Observer",
    "SharedReplay",
    "Subscription",
    "ValueCell",
    "combine_latest",
    "from_event",
    "merge",
    "on_error_return",
]
