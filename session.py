import dataclasses
import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from asset_resolver import AssetBlobMap
from baseline import POSE_BASELINE
from errors import AssetLoadError, ModelLoadError
from mapping_registry import RobotProfile, get_robot_profile, match_robot_profile
from model_normalizer import DEFAULT_TARGET_SIZE, normalize_model
from pose_types import JointCommand, RecordedSequence
from robot_model import RobotModel

logger = logging.getLogger(__name__)

ProfileArg = Optional[Union[str, RobotProfile]]


class RetargetSession:
    """Everything loaded into one retargeting session.

    Owns the robot model, the uploaded asset blobs and the last recording.
    Joint commands are applied here; while no model is loaded they are ignored.
    """

    def __init__(self, target_size: float = DEFAULT_TARGET_SIZE):
        self.target_size = target_size
        self.model: Optional[RobotModel] = None
        self.assets: Optional[AssetBlobMap] = None
        self.profile: RobotProfile = get_robot_profile(None)
        self.recorded_sequence: Optional[RecordedSequence] = None
        self.recorded_video_path: Optional[Path] = None

    @property
    def has_model(self) -> bool:
        return self.model is not None

    # Loading

    def load_files(
        self,
        description_path: Union[str, Path],
        mesh_paths: Iterable[Union[str, Path]] = (),
        profile: ProfileArg = None,
    ) -> RobotModel:
        description_path = Path(description_path)
        try:
            description = description_path.read_bytes()
        except OSError as exc:
            raise AssetLoadError(f"Error reading robot description: {exc}") from exc
        blob_map = AssetBlobMap.from_files(mesh_paths)
        return self.load_description(description, blob_map, profile, name=description_path.stem)

    def load_archive(self, archive: Union[str, Path, bytes], profile: ProfileArg = None) -> RobotModel:
        description, description_name, blob_map = AssetBlobMap.from_archive(archive)
        return self.load_description(description, blob_map, profile, name=Path(description_name).stem)

    def load_description(
        self,
        description: bytes,
        blob_map: Optional[AssetBlobMap] = None,
        profile: ProfileArg = None,
        name: str = "robot",
    ) -> RobotModel:
        try:
            model = RobotModel.load(description, blob_map, name=name)
        except ModelLoadError:
            if blob_map is not None:
                blob_map.release()
            raise

        if isinstance(profile, RobotProfile):
            resolved_profile = profile
        elif profile is not None:
            resolved_profile = get_robot_profile(profile)
        else:
            resolved_profile = match_robot_profile(model.name)

        # Replacing files: the previous blobs are no longer referenced.
        self._release_assets()
        self.assets = blob_map
        self.profile = resolved_profile
        # Ground the model in the pose it will be shown in.
        model.apply_command(POSE_BASELINE)
        normalization = resolved_profile.normalization
        if normalization.scale is None:
            normalization = dataclasses.replace(normalization, target_size=self.target_size)
        self.model = normalize_model(model, normalization)
        logger.info("Session loaded %s with profile %s", model.name, resolved_profile.key)
        return self.model

    # Commands

    def apply_command(self, command: JointCommand) -> Dict[str, float]:
        if self.model is None:
            return {}
        return self.model.apply_command(command)

    # Recordings

    def set_recording(self, sequence: RecordedSequence, video_path: Optional[Path] = None) -> None:
        if self.recorded_video_path is not None and self.recorded_video_path != video_path:
            self._delete_video()
        self.recorded_sequence = sequence
        self.recorded_video_path = Path(video_path) if video_path is not None else None

    def discard_recording(self) -> None:
        self._delete_video()
        self.recorded_sequence = None
        self.recorded_video_path = None

    def _delete_video(self) -> None:
        if self.recorded_video_path is None:
            return
        try:
            self.recorded_video_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not delete recorded video %s: %s", self.recorded_video_path, exc)

    def _release_assets(self) -> None:
        if self.assets is not None:
            self.assets.release()
            self.assets = None

    def clear(self) -> None:
        self._release_assets()
        self.model = None
        self.profile = get_robot_profile(None)
        self.discard_recording()
        logger.info("Session cleared")
