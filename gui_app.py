import logging
import math
import sys
import time
from pathlib import Path
from typing import Optional

import cv2
import numpy as np
from PySide6 import QtCore, QtGui, QtWidgets

from app import create_controller
from config import RetargetConfig
from errors import RetargetError
from history import export_sequence
from logging_utils import setup_logging
from mapping_registry import JointMapper, get_robot_profiles
from pose_types import JointCommand
from session import RetargetSession
from visualization import draw_landmarks, draw_robot

logger = logging.getLogger(__name__)

PANEL_STYLE = "QFrame{background:#15181b;border:1px solid #2b2f33;border-radius:10px;color:#e6e6e6;}"
BUTTON_STYLE = (
    "QPushButton{background:#1f6f5f;color:white;padding:8px 16px;border-radius:8px;font-size:13px;}"
    "QPushButton:hover{background:#249b84;}"
    "QPushButton:disabled{background:#2b2f33;color:#777;}"
)


def _to_pixmap(frame_bgr, size: QtCore.QSize) -> QtGui.QPixmap:
    frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
    h, w, ch = frame_rgb.shape
    bytes_per_line = ch * w
    image = QtGui.QImage(frame_rgb.data, w, h, bytes_per_line, QtGui.QImage.Format_RGB888)
    pixmap = QtGui.QPixmap.fromImage(image)
    return pixmap.scaled(size, QtCore.Qt.KeepAspectRatio)


class RetargetPage(QtWidgets.QWidget):
    def __init__(self, config: RetargetConfig, parent=None):
        super().__init__(parent)
        self.config = config
        self._setup_ui()
        self._setup_runtime()

    def _setup_ui(self):
        self.setObjectName("RetargetPage")
        layout = QtWidgets.QHBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(16)

        views = QtWidgets.QVBoxLayout()
        views.setSpacing(12)
        self.video_label = QtWidgets.QLabel("Camera feed")
        self.robot_label = QtWidgets.QLabel("No robot loaded")
        for label in [self.video_label, self.robot_label]:
            label.setAlignment(QtCore.Qt.AlignCenter)
            label.setMinimumSize(480, 320)
            label.setStyleSheet("background:#101214; border-radius:12px; color:#b9c0c5;")
            views.addWidget(label, 1)

        right_panel = QtWidgets.QVBoxLayout()
        right_panel.setSpacing(12)

        controls = QtWidgets.QFrame()
        controls.setStyleSheet(PANEL_STYLE)
        controls_layout = QtWidgets.QVBoxLayout(controls)
        controls_layout.setContentsMargins(12, 12, 12, 12)
        controls_layout.setSpacing(8)

        self.load_files_btn = QtWidgets.QPushButton("Load URDF + meshes")
        self.load_zip_btn = QtWidgets.QPushButton("Load ZIP")
        self.record_btn = QtWidgets.QPushButton("Record")
        self.play_btn = QtWidgets.QPushButton("Play recording")
        self.export_btn = QtWidgets.QPushButton("Export JSON")
        self.clear_btn = QtWidgets.QPushButton("Clear")
        for btn in [self.load_files_btn, self.load_zip_btn, self.record_btn, self.play_btn, self.export_btn, self.clear_btn]:
            btn.setStyleSheet(BUTTON_STYLE)
            controls_layout.addWidget(btn)

        self.smoothing_check = QtWidgets.QCheckBox("Smoothing")
        self.smoothing_check.setChecked(self.config.smoothing_enabled)
        self.status_label = QtWidgets.QLabel("Idle")
        self.status_label.setWordWrap(True)
        self.status_label.setStyleSheet("font-size:14px;")
        controls_layout.addWidget(self.smoothing_check)
        controls_layout.addWidget(self.status_label)

        self.joint_table = QtWidgets.QTableWidget(0, 2)
        self.joint_table.setHorizontalHeaderLabels(["Joint", "Angle (deg)"])
        self.joint_table.horizontalHeader().setStretchLastSection(True)
        self.joint_table.verticalHeader().setVisible(False)
        self.joint_table.setMinimumWidth(280)
        self.joint_table.setStyleSheet("QTableWidget{background:#15181b;color:#e6e6e6;border-radius:10px;}")

        right_panel.addWidget(controls)
        right_panel.addWidget(self.joint_table, 1)

        layout.addLayout(views, 1)
        layout.addLayout(right_panel)

    def _setup_runtime(self):
        self.session = RetargetSession(target_size=self.config.target_size)
        self.controller = create_controller(self.config, self.session, on_status=self._on_status)
        self._started = False

        self.load_files_btn.clicked.connect(self._load_files)
        self.load_zip_btn.clicked.connect(self._load_zip)
        self.record_btn.clicked.connect(self._toggle_recording)
        self.play_btn.clicked.connect(self._toggle_replay)
        self.export_btn.clicked.connect(self._export)
        self.clear_btn.clicked.connect(self._clear)
        self.smoothing_check.toggled.connect(self.controller.set_smoothing)

        # Tracking and preview redraw run on independent timers.
        self.tracking_timer = QtCore.QTimer(self)
        self.tracking_timer.timeout.connect(self._track)
        self.tracking_timer.start(33)
        self.preview_timer = QtCore.QTimer(self)
        self.preview_timer.timeout.connect(self._redraw)
        self.preview_timer.start(50)
        self._update_buttons()

    def start_camera(self):
        if not self._started:
            self._started = self.controller.start()

    def stop_camera(self):
        self.controller.stop()
        self.session.clear()
        self._started = False

    def _on_status(self, message: str):
        self.status_label.setText(message)
        self._update_buttons()

    def _update_buttons(self):
        recording = self.controller.recording
        self.record_btn.setText("Stop recording" if recording else "Record")
        self.play_btn.setText("Stop playback" if self.controller.mode.value == "replay" else "Play recording")
        self.play_btn.setEnabled(not recording and self.session.recorded_video_path is not None)
        self.export_btn.setEnabled(self.session.recorded_sequence is not None)

    # Loading

    def _load_profile(self):
        return self.window().selected_profile() if hasattr(self.window(), "selected_profile") else None

    def _after_load(self):
        self.controller.mapper = JointMapper(self.session.profile.mappings)
        self.controller.smoother.reset()
        self.status_label.setText(f"Loaded {self.session.model.name} ({self.session.profile.name})")
        missing = self.session.model.unresolved_assets + self.session.model.failed_assets
        if missing:
            self.status_label.setText(self.status_label.text() + f"\n{len(missing)} meshes missing")

    def _load_files(self):
        paths, _ = QtWidgets.QFileDialog.getOpenFileNames(
            self, "Select URDF and mesh files", "", "Robot files (*.urdf *.xml *.stl *.obj *.dae *.gltf *.glb)"
        )
        if not paths:
            return
        descriptions = [p for p in paths if p.lower().endswith((".urdf", ".xml"))]
        if not descriptions:
            self.status_label.setText("No .urdf or .xml file selected")
            return
        meshes = [p for p in paths if p not in descriptions]
        try:
            self.session.load_files(descriptions[0], meshes, self._load_profile())
        except RetargetError as exc:
            self.status_label.setText(f"Error: {exc}")
            return
        self._after_load()

    def _load_zip(self):
        path, _ = QtWidgets.QFileDialog.getOpenFileName(self, "Select ZIP archive", "", "ZIP archives (*.zip)")
        if not path:
            return
        try:
            self.session.load_archive(Path(path), self._load_profile())
        except RetargetError as exc:
            self.status_label.setText(f"Error: {exc}")
            return
        self._after_load()

    # Controls

    def _toggle_recording(self):
        self.controller.toggle_recording()
        self._update_buttons()

    def _toggle_replay(self):
        self.controller.toggle_replay()
        self._update_buttons()

    def _export(self):
        if self.session.recorded_sequence is None:
            return
        default = str(Path(self.config.recording_dir) / f"sequence_{int(time.time())}.json")
        path, _ = QtWidgets.QFileDialog.getSaveFileName(self, "Export recording", default, "JSON (*.json)")
        if path:
            export_sequence(self.session.recorded_sequence, path)

    def _clear(self):
        self.controller.clear()
        self.robot_label.setText("No robot loaded")
        self._update_buttons()

    # Timers

    def _track(self):
        if not self._started:
            return
        self.controller.tick()

    def _redraw(self):
        if self.controller.last_frame is not None:
            frame = self.controller.last_frame.copy()
            draw_landmarks(frame, self.controller.last_landmarks)
            self.video_label.setPixmap(_to_pixmap(frame, self.video_label.size()))

        if self.session.model is not None:
            canvas = np.full((360, 480, 3), 16, dtype=np.uint8)
            draw_robot(canvas, self.session.model)
            self.robot_label.setPixmap(_to_pixmap(canvas, self.robot_label.size()))
        self._update_joint_table(self.controller.last_command)

    def _update_joint_table(self, command: JointCommand):
        names = sorted(command.joints)
        self.joint_table.setRowCount(len(names))
        for row, name in enumerate(names):
            self.joint_table.setItem(row, 0, QtWidgets.QTableWidgetItem(name))
            self.joint_table.setItem(row, 1, QtWidgets.QTableWidgetItem(f"{math.degrees(command.joints[name]):.1f}"))


class SettingsPage(QtWidgets.QWidget):
    def __init__(self, config: RetargetConfig, parent=None):
        super().__init__(parent)
        layout = QtWidgets.QVBoxLayout(self)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(16)

        title = QtWidgets.QLabel("Settings")
        title.setStyleSheet("font-size:20px;font-weight:600;color:#f2f2f2;")
        layout.addWidget(title)

        form = QtWidgets.QFormLayout()
        self.profile_combo = QtWidgets.QComboBox()
        self.profile_combo.addItem("Detect from robot name", None)
        for key, profile in get_robot_profiles().items():
            self.profile_combo.addItem(profile.name, key)
        if config.profile:
            idx = self.profile_combo.findData(config.profile)
            if idx >= 0:
                self.profile_combo.setCurrentIndex(idx)
        form.addRow("Robot profile", self.profile_combo)
        layout.addLayout(form)

        info = QtWidgets.QLabel(
            "Tip: keep your upper body and both hands visible to the camera for best results."
        )
        info.setStyleSheet("font-size:13px;color:#b9c0c5;")
        layout.addWidget(info)
        layout.addStretch(1)

    def selected_profile(self) -> Optional[str]:
        return self.profile_combo.currentData()


class MainWindow(QtWidgets.QMainWindow):
    def __init__(self, config: RetargetConfig):
        super().__init__()
        self.config = config
        self.setWindowTitle("Robot Retargeting")
        self.resize(1280, 800)
        self._setup_ui()

    def _setup_ui(self):
        self.setStyleSheet("QMainWindow{background:#0f1113;}")

        root = QtWidgets.QWidget()
        self.setCentralWidget(root)
        layout = QtWidgets.QHBoxLayout(root)
        layout.setContentsMargins(0, 0, 0, 0)

        nav = QtWidgets.QFrame()
        nav.setFixedWidth(200)
        nav.setStyleSheet("QFrame{background:#0c0e10;border-right:1px solid #22262a;}")
        nav_layout = QtWidgets.QVBoxLayout(nav)
        nav_layout.setContentsMargins(12, 20, 12, 12)
        nav_layout.setSpacing(10)

        self.retarget_btn = QtWidgets.QPushButton("Retarget")
        self.settings_btn = QtWidgets.QPushButton("Settings")
        for btn in [self.retarget_btn, self.settings_btn]:
            btn.setStyleSheet(
                "QPushButton{background:#15181b;color:#e6e6e6;padding:10px;border-radius:8px;text-align:left;}"
                "QPushButton:hover{background:#1a1f24;}"
            )
            nav_layout.addWidget(btn)
        nav_layout.addStretch(1)

        self.stack = QtWidgets.QStackedWidget()
        self.retarget_page = RetargetPage(self.config)
        self.settings_page = SettingsPage(self.config)
        self.stack.addWidget(self.retarget_page)
        self.stack.addWidget(self.settings_page)

        layout.addWidget(nav)
        layout.addWidget(self.stack, 1)

        self.retarget_btn.clicked.connect(lambda: self._switch_page(0))
        self.settings_btn.clicked.connect(lambda: self._switch_page(1))
        self._switch_page(0)

    def _switch_page(self, idx: int):
        self.stack.setCurrentIndex(idx)
        if idx == 0:
            self.retarget_page.start_camera()

    def selected_profile(self) -> Optional[str]:
        return self.settings_page.selected_profile()

    def closeEvent(self, event):
        self.retarget_page.stop_camera()
        super().closeEvent(event)


def main():
    config = RetargetConfig.from_env()
    setup_logging(config.log_level)
    app = QtWidgets.QApplication(sys.argv)
    window = MainWindow(config)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
