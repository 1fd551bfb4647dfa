"""In-memory playback state mutated by control interactions."""

from dataclasses import dataclass, field

from ..defaults import TRACKS, Track
from ..statistics.sampler import OutcomeSampler


@dataclass
class PlayerState:
    """Track list, current position, shuffle flag and volume of the remote."""

    catalog: tuple[Track, ...] = TRACKS
    tracks: list[Track] = field(default_factory=list)
    current_index: int = 0
    shuffle_enabled: bool = False
    is_playing: bool = False
    volume: int = 50

    def __post_init__(self):
        if not self.tracks:
            self.tracks = list(self.catalog)

    @property
    def current_track(self) -> Track | None:
        if not self.tracks:
            return None
        return self.tracks[self.current_index]

    def select(self, index: int) -> Track | None:
        if self.tracks:
            self.current_index = index % len(self.tracks)
        return self.current_track

    def next(self) -> Track | None:
        return self.select(self.current_index + 1)

    def previous(self) -> Track | None:
        return self.select(self.current_index - 1)

    def toggle_shuffle(self, sampler: OutcomeSampler) -> bool:
        """Flip shuffle: enabled reorders in place, disabled restores catalog order."""
        self.shuffle_enabled = not self.shuffle_enabled
        if self.shuffle_enabled:
            sampler.shuffle(self.tracks)
        else:
            self.tracks = list(self.catalog)
        self.current_index = 0
        return self.shuffle_enabled

    def adjust_volume(self, delta: int) -> int:
        self.volume = max(0, min(100, self.volume + delta))
        return self.volume
