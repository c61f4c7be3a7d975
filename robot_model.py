import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
import trimesh
from scipy.spatial.transform import Rotation as R

from asset_resolver import AssetBlobMap, BlobHandle, resolve_asset
from errors import ModelLoadError
from pose_types import JointCommand

logger = logging.getLogger(__name__)

MOVABLE_JOINT_TYPES = ("revolute", "continuous", "prismatic")


@dataclass
class JointDescriptor:
    name: str
    joint_type: str
    lower: Optional[float] = None
    upper: Optional[float] = None
    angle: float = 0.0

    def clamp(self, value: float) -> float:
        if self.lower is not None and value < self.lower:
            return self.lower
        if self.upper is not None and value > self.upper:
            return self.upper
        return value


@dataclass
class UrdfJoint:
    name: str
    joint_type: str
    parent: str
    child: str
    origin: np.ndarray
    axis: np.ndarray
    lower: Optional[float] = None
    upper: Optional[float] = None
    mimic: Optional[Tuple[str, float, float]] = None


@dataclass
class UrdfVisual:
    origin: np.ndarray
    kind: str
    params: dict = field(default_factory=dict)


def _floats(text: Optional[str], default: Tuple[float, ...]) -> np.ndarray:
    if not text:
        return np.array(default, dtype=float)
    return np.array([float(v) for v in text.split()], dtype=float)


def _origin(element) -> np.ndarray:
    matrix = np.eye(4)
    if element is None:
        return matrix
    xyz = _floats(element.get("xyz"), (0.0, 0.0, 0.0))
    rpy = _floats(element.get("rpy"), (0.0, 0.0, 0.0))
    # URDF rpy is roll/pitch/yaw about fixed X, Y, Z axes.
    matrix[:3, :3] = R.from_euler("xyz", rpy).as_matrix()
    matrix[:3, 3] = xyz
    return matrix


def _optional_float(value: Optional[str]) -> Optional[float]:
    return float(value) if value is not None else None


def _parse_visual(element) -> Optional[UrdfVisual]:
    geometry = element.find("geometry")
    if geometry is None or len(geometry) == 0:
        return None
    shape = geometry[0]
    origin = _origin(element.find("origin"))
    if shape.tag == "mesh":
        return UrdfVisual(origin, "mesh", {
            "filename": shape.get("filename", ""),
            "scale": _floats(shape.get("scale"), (1.0, 1.0, 1.0)),
        })
    if shape.tag == "box":
        return UrdfVisual(origin, "box", {"size": _floats(shape.get("size"), (1.0, 1.0, 1.0))})
    if shape.tag == "cylinder":
        return UrdfVisual(origin, "cylinder", {
            "radius": float(shape.get("radius", 0.0)),
            "length": float(shape.get("length", 0.0)),
        })
    if shape.tag == "sphere":
        return UrdfVisual(origin, "sphere", {"radius": float(shape.get("radius", 0.0))})
    logger.debug("Unsupported visual geometry <%s>", shape.tag)
    return None


def _parse_joint(element) -> UrdfJoint:
    joint_type = element.get("type", "fixed")
    limit = element.find("limit")
    lower = upper = None
    if limit is not None and joint_type != "continuous":
        lower = _optional_float(limit.get("lower"))
        upper = _optional_float(limit.get("upper"))
    axis_el = element.find("axis")
    axis = _floats(axis_el.get("xyz") if axis_el is not None else None, (1.0, 0.0, 0.0))
    norm = np.linalg.norm(axis)
    axis = axis / norm if norm > 1e-9 else np.array([1.0, 0.0, 0.0])
    mimic_el = element.find("mimic")
    mimic = None
    if mimic_el is not None:
        mimic = (
            mimic_el.get("joint"),
            float(mimic_el.get("multiplier", 1.0)),
            float(mimic_el.get("offset", 0.0)),
        )
    return UrdfJoint(
        name=element.get("name"),
        joint_type=joint_type,
        parent=element.find("parent").get("link"),
        child=element.find("child").get("link"),
        origin=_origin(element.find("origin")),
        axis=axis,
        lower=lower,
        upper=upper,
        mimic=mimic,
    )


def _load_mesh(path: Path, scale: np.ndarray) -> trimesh.Trimesh:
    mesh = trimesh.load(str(path), force="mesh")
    if not isinstance(mesh, trimesh.Trimesh) or len(mesh.vertices) == 0:
        raise ValueError(f"no triangles in {path.name}")
    mesh.apply_scale(scale)
    return mesh


def _primitive(visual: UrdfVisual) -> trimesh.Trimesh:
    if visual.kind == "box":
        return trimesh.creation.box(extents=visual.params["size"])
    if visual.kind == "cylinder":
        return trimesh.creation.cylinder(radius=visual.params["radius"], height=visual.params["length"])
    return trimesh.creation.icosphere(subdivisions=1, radius=visual.params["radius"])


class RobotModel:
    """A loaded URDF robot with a root transform and a validated joint registry.

    The root transform (rotation, uniform scale, position) sits on top of the
    URDF's own link frames. The renderer convention is Y-up.
    """

    def __init__(
        self,
        name: str,
        links: List[str],
        urdf_joints: List[UrdfJoint],
        link_vertices: Dict[str, np.ndarray],
        unresolved_assets: Optional[List[str]] = None,
        failed_assets: Optional[List[str]] = None,
    ):
        self.name = name
        self.links = links
        self.urdf_joints = urdf_joints
        self.unresolved_assets = list(unresolved_assets or [])
        self.failed_assets = list(failed_assets or [])
        self._link_vertices = link_vertices
        self._children: Dict[str, List[UrdfJoint]] = {}
        for joint in urdf_joints:
            self._children.setdefault(joint.parent, []).append(joint)
        child_links = {joint.child for joint in urdf_joints}
        roots = [link for link in links if link not in child_links]
        if not roots:
            raise ModelLoadError("Robot description has no root link")
        self.root_link = roots[0]

        self.joints: Dict[str, JointDescriptor] = {
            j.name: JointDescriptor(j.name, j.joint_type, j.lower, j.upper)
            for j in urdf_joints
            if j.joint_type in MOVABLE_JOINT_TYPES and j.mimic is None
        }
        self.rotation = np.eye(3)
        self.scale = 1.0
        self.position = np.zeros(3)
        self._link_transforms: Optional[Dict[str, np.ndarray]] = None

    @classmethod
    def load(cls, description: bytes, blob_map: Optional[AssetBlobMap] = None, name: str = "robot") -> "RobotModel":
        try:
            root = ET.fromstring(description)
        except ET.ParseError as exc:
            raise ModelLoadError(f"Could not parse robot description: {exc}") from exc
        if root.tag != "robot":
            raise ModelLoadError(f"Expected a <robot> element, found <{root.tag}>")

        links: List[str] = []
        link_vertices: Dict[str, np.ndarray] = {}
        unresolved: List[str] = []
        failed: List[str] = []
        mesh_cache: Dict[Tuple[str, float, float, float], trimesh.Trimesh] = {}
        try:
            for link_el in root.findall("link"):
                link_name = link_el.get("name")
                links.append(link_name)
                chunks = []
                for visual_el in link_el.findall("visual"):
                    visual = _parse_visual(visual_el)
                    if visual is None:
                        continue
                    if visual.kind == "mesh":
                        reference = visual.params["filename"]
                        resolved = resolve_asset(reference, blob_map)
                        path = resolved.path if isinstance(resolved, BlobHandle) else Path(resolved)
                        # Not uploaded: still usable when it names a file on disk.
                        if not isinstance(resolved, BlobHandle) and not path.is_file():
                            unresolved.append(reference)
                            continue
                        scale = visual.params["scale"]
                        cache_key = (str(path), float(scale[0]), float(scale[1]), float(scale[2]))
                        if cache_key in mesh_cache:
                            mesh = mesh_cache[cache_key]
                        else:
                            try:
                                mesh = _load_mesh(path, scale)
                            except Exception as exc:
                                logger.error("Failed to load mesh %r for link %s: %s", reference, link_name, exc)
                                failed.append(reference)
                                continue
                            mesh_cache[cache_key] = mesh
                    else:
                        mesh = _primitive(visual)
                    chunks.append(trimesh.transform_points(mesh.vertices, visual.origin))
                if chunks:
                    link_vertices[link_name] = np.vstack(chunks)

            urdf_joints = [_parse_joint(el) for el in root.findall("joint")]
        except (AttributeError, TypeError, ValueError) as exc:
            raise ModelLoadError(f"Malformed robot description: {exc}") from exc

        model = cls(
            name=root.get("name") or name,
            links=links,
            urdf_joints=urdf_joints,
            link_vertices=link_vertices,
            unresolved_assets=unresolved,
            failed_assets=failed,
        )
        logger.info(
            "Loaded robot %s: %d links, %d movable joints, %d unresolved meshes",
            model.name,
            len(links),
            len(model.joints),
            len(unresolved),
        )
        if unresolved:
            logger.warning("Meshes not found in upload: %s", unresolved)
        return model

    # Joint registry

    def get_joint(self, name: str) -> Optional[JointDescriptor]:
        return self.joints.get(name)

    def joint_angles(self) -> Dict[str, float]:
        return {name: joint.angle for name, joint in self.joints.items()}

    def apply_command(self, command: JointCommand) -> Dict[str, float]:
        applied: Dict[str, float] = {}
        for name, value in command.joints.items():
            joint = self.get_joint(name)
            if joint is None:
                continue
            joint.angle = joint.clamp(value)
            applied[name] = joint.angle
        if applied:
            self._link_transforms = None
        return applied

    # Kinematics

    def _joint_position(self, joint: UrdfJoint) -> float:
        if joint.mimic is not None:
            source = self.joints.get(joint.mimic[0])
            base = source.angle if source is not None else 0.0
            return joint.mimic[1] * base + joint.mimic[2]
        descriptor = self.joints.get(joint.name)
        return descriptor.angle if descriptor is not None else 0.0

    def _joint_motion(self, joint: UrdfJoint) -> np.ndarray:
        motion = np.eye(4)
        if joint.joint_type in ("revolute", "continuous"):
            motion[:3, :3] = R.from_rotvec(joint.axis * self._joint_position(joint)).as_matrix()
        elif joint.joint_type == "prismatic":
            motion[:3, 3] = joint.axis * self._joint_position(joint)
        return motion

    def link_transforms(self) -> Dict[str, np.ndarray]:
        """Link frames relative to the robot root, for the current joint angles."""
        if self._link_transforms is not None:
            return self._link_transforms
        transforms = {self.root_link: np.eye(4)}
        stack = [self.root_link]
        while stack:
            parent = stack.pop()
            for joint in self._children.get(parent, []):
                if joint.child in transforms:
                    continue
                transforms[joint.child] = transforms[parent] @ joint.origin @ self._joint_motion(joint)
                stack.append(joint.child)
        self._link_transforms = transforms
        return transforms

    # Root transform

    def reset_transform(self) -> None:
        self.rotation = np.eye(3)
        self.scale = 1.0
        self.position = np.zeros(3)

    def to_world(self, points: np.ndarray) -> np.ndarray:
        points = np.asarray(points, dtype=float).reshape(-1, 3)
        return points @ (self.rotation * self.scale).T + self.position

    # Geometry

    def link_positions(self) -> Dict[str, np.ndarray]:
        transforms = self.link_transforms()
        names = list(transforms)
        world = self.to_world(np.array([transforms[n][:3, 3] for n in names]))
        return dict(zip(names, world))

    def skeleton_edges(self) -> List[Tuple[str, str]]:
        return [(joint.parent, joint.child) for joint in self.urdf_joints]

    def _local_points(self) -> np.ndarray:
        transforms = self.link_transforms()
        chunks = [
            trimesh.transform_points(vertices, transforms[link])
            for link, vertices in self._link_vertices.items()
            if link in transforms
        ]
        if chunks:
            return np.vstack(chunks)
        # No visual geometry loaded: fall back to the link frames.
        return np.array([t[:3, 3] for t in transforms.values()])

    def bounds(self) -> np.ndarray:
        """World axis-aligned bounding box as a (2, 3) array of min and max."""
        world = self.to_world(self._local_points())
        return np.vstack([world.min(axis=0), world.max(axis=0)])
