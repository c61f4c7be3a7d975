import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from pose_types import JointCommand, RecordedSequence

logger = logging.getLogger(__name__)


class CommandRecorder:
    def __init__(self):
        self._buffer: List[JointCommand] = []
        self.active = False

    def __len__(self) -> int:
        return len(self._buffer)

    def start(self) -> None:
        self._buffer = []
        self.active = True

    def append(self, command: JointCommand) -> None:
        if self.active:
            self._buffer.append(command)

    def stop(self) -> Optional[RecordedSequence]:
        if not self.active:
            return None
        self.active = False
        sequence = RecordedSequence.from_commands(self._buffer)
        self._buffer = []
        return sequence


def sequence_to_dict(sequence: RecordedSequence) -> dict:
    offsets = sequence.relative_timestamps()
    return {
        "frames": [
            {"t": offset, "joints": dict(cmd.joints)}
            for offset, cmd in zip(offsets, sequence.commands)
        ]
    }


def sequence_from_dict(data: dict) -> RecordedSequence:
    commands = [
        JointCommand(joints=frame.get("joints", {}), timestamp_ms=int(frame.get("t", 0)))
        for frame in data.get("frames", [])
    ]
    return RecordedSequence.from_commands(commands)


def export_sequence(sequence: RecordedSequence, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fp:
        json.dump(sequence_to_dict(sequence), fp, indent=2)
    logger.info("Exported %d recorded frames to %s", len(sequence), path)
    return path


def load_sequence(path: Union[str, Path]) -> RecordedSequence:
    with open(path, "r", encoding="utf-8") as fp:
        return sequence_from_dict(json.load(fp))
