"""Synthesised two-tone notification chime."""

import math
from array import array
from dataclasses import dataclass
from typing import Protocol

from structlog.stdlib import BoundLogger

DEFAULT_SAMPLE_RATE = 44100
PEAK_GAIN = 0.3
FLOOR_GAIN = 0.001
ATTACK_SECONDS = 0.02


@dataclass(frozen=True)
class Tone:
    """Sine tone placed on the chime timeline."""

    frequency: float
    start: float
    duration: float


# 830 Hz then 1100 Hz, slightly overlapping
CHIME_TONES: tuple[Tone, ...] = (
    Tone(frequency=830.0, start=0.0, duration=0.15),
    Tone(frequency=1100.0, start=0.12, duration=0.2),
)


def tone_gain(t: float, duration: float) -> float:
    """Envelope at ``t`` seconds into a tone.

    Linear attack to PEAK_GAIN over ATTACK_SECONDS, then exponential decay
    reaching FLOOR_GAIN at ``duration``.
    """
    if t < 0 or t >= duration:
        return 0.0
    if t < ATTACK_SECONDS:
        return PEAK_GAIN * t / ATTACK_SECONDS
    progress = (t - ATTACK_SECONDS) / (duration - ATTACK_SECONDS)
    return PEAK_GAIN * (FLOOR_GAIN / PEAK_GAIN) ** progress


def synthesize_chime(
    sample_rate: int = DEFAULT_SAMPLE_RATE, tones: tuple[Tone, ...] = CHIME_TONES
) -> array:
    """Render the chime as signed 16-bit mono PCM samples."""
    length = max(tone.start + tone.duration for tone in tones)
    total = int(math.ceil(length * sample_rate))
    mix = [0.0] * total
    for tone in tones:
        first = int(tone.start * sample_rate)
        count = int(tone.duration * sample_rate)
        for i in range(count):
            t = i / sample_rate
            index = first + i
            if index >= total:
                break
            mix[index] += tone_gain(t, tone.duration) * math.sin(
                2 * math.pi * tone.frequency * t
            )
    return array("h", (int(max(-1.0, min(1.0, v)) * 32767) for v in mix))


class AudioSink(Protocol):
    """Platform audio output."""

    async def play(self, samples: array, sample_rate: int) -> None:
        """Play 16-bit mono PCM samples."""
        ...


class LoggingAudioSink:
    """Audio sink for headless sessions that records plays in the log."""

    def __init__(self, logger: BoundLogger) -> None:
        self._logger = logger
        self.play_count = 0

    async def play(self, samples: array, sample_rate: int) -> None:
        self.play_count += 1
        self._logger.info(
            "Chime played",
            duration=round(len(samples) / sample_rate, 3),
        )


class ChimePlayer:
    """Plays the pre-rendered chime on an audio sink."""

    def __init__(self, sink: AudioSink, sample_rate: int = DEFAULT_SAMPLE_RATE) -> None:
        self._sink = sink
        self._sample_rate = sample_rate
        self._samples = synthesize_chime(sample_rate)

    @property
    def samples(self) -> array:
        return self._samples

    async def play(self) -> None:
        await self._sink.play(self._samples, self._sample_rate)
