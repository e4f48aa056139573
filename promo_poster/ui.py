from __future__ import annotations

from pathlib import Path
from typing import Optional

from PyQt6 import QtCore, QtGui, QtWidgets

from . import __version__
from .compositor import PosterStyle, RenderedPoster, render_poster
from .config import AppConfig
from .export import poster_filename, save_poster
from .geometry import PosterConfig
from .logger import setup_logging
from .profiles import ProfileStore, UserProfile, resolve_inputs
from .surface import SurfaceError


class RenderWorker(QtCore.QObject):
    finished = QtCore.pyqtSignal(object)
    error = QtCore.pyqtSignal(str)

    def __init__(self, cfg: AppConfig, template: Optional[str], qr_code: Optional[str],
                 config: PosterConfig):
        super().__init__()
        self.cfg = cfg
        self.template = template
        self.qr_code = qr_code
        self.config = config

    @QtCore.pyqtSlot()
    def run(self):
        log = setup_logging(self.cfg.debug)
        try:
            rendered = render_poster(
                self.cfg.width,
                self.template,
                self.qr_code,
                self.config,
                master=True,
                style=PosterStyle.from_config(self.cfg),
            )
            self.finished.emit(rendered)
        except SurfaceError as e:
            log.error("[Render] Drawing surface unavailable: %s", e)
            self.error.emit(str(e))


class PosterWindow(QtWidgets.QMainWindow):
    def __init__(self, cfg: AppConfig):
        super().__init__()
        self.cfg = cfg
        self.store = ProfileStore(cfg.profiles_path)
        self.user: UserProfile = self.store.get_user(cfg.current_user) or UserProfile(nickname=cfg.current_user)
        self.rendered: Optional[RenderedPoster] = None
        self._jobs: list[tuple[QtCore.QThread, RenderWorker]] = []
        self.setWindowTitle(f"推广海报 v{__version__}")
        self._build()
        self._load_from_profile()

    def _build(self):
        central = QtWidgets.QWidget()
        layout = QtWidgets.QHBoxLayout(central)
        layout.setContentsMargins(12, 12, 12, 12)

        form = QtWidgets.QFormLayout()
        self.ed_nick = QtWidgets.QLineEdit()
        form.addRow("昵称", self.ed_nick)

        self.ed_template = QtWidgets.QLineEdit()
        self.ed_template.setPlaceholderText("留空则使用全局底图")
        form.addRow("长海报底图", self._with_browse(self.ed_template))
        self.ed_qr = QtWidgets.QLineEdit()
        form.addRow("二维码图片", self._with_browse(self.ed_qr))

        self.sp_x = self._spin(0, 750, 1.0)
        self.sp_y = self._spin(0, 5000, 1.0)
        self.sp_size = self._spin(1, 750, 1.0)
        self.sp_zoom = self._spin(1.0, 5.0, 0.1)
        self.sp_crop_x = self._spin(-50, 50, 1.0)
        self.sp_crop_y = self._spin(-50, 50, 1.0)
        form.addRow("X", self.sp_x)
        form.addRow("Y", self.sp_y)
        form.addRow("尺寸", self.sp_size)
        form.addRow("缩放", self.sp_zoom)
        form.addRow("水平偏移 %", self.sp_crop_x)
        form.addRow("垂直偏移 %", self.sp_crop_y)

        self.btn_render = QtWidgets.QPushButton("生成预览")
        self.btn_render.clicked.connect(self.render_preview)
        self.btn_download = QtWidgets.QPushButton("下载合成海报")
        self.btn_download.setEnabled(False)
        self.btn_download.clicked.connect(self._download)
        self.btn_save = QtWidgets.QPushButton("保存设定")
        self.btn_save.clicked.connect(self._save_profile)
        form.addRow(self.btn_render)
        form.addRow(self.btn_download)
        form.addRow(self.btn_save)

        left = QtWidgets.QWidget()
        left.setLayout(form)
        left.setMaximumWidth(380)
        layout.addWidget(left)

        self.preview = QtWidgets.QLabel("正在合成海报...")
        self.preview.setAlignment(QtCore.Qt.AlignmentFlag.AlignCenter)
        self.preview.setMinimumSize(300, 500)
        layout.addWidget(self.preview, 1)
        self.setCentralWidget(central)
        self.statusBar()

    def _spin(self, lo: float, hi: float, step: float) -> QtWidgets.QDoubleSpinBox:
        sp = QtWidgets.QDoubleSpinBox()
        sp.setRange(lo, hi)
        sp.setSingleStep(step)
        sp.setDecimals(1)
        return sp

    def _with_browse(self, edit: QtWidgets.QLineEdit) -> QtWidgets.QWidget:
        btn = QtWidgets.QPushButton("选择")
        btn.clicked.connect(lambda: self._choose_image_into(edit))
        h = QtWidgets.QHBoxLayout()
        h.setContentsMargins(0, 0, 0, 0)
        h.addWidget(edit, 1)
        h.addWidget(btn)
        w = QtWidgets.QWidget()
        w.setLayout(h)
        return w

    def _choose_image_into(self, edit: QtWidgets.QLineEdit):
        fn, _ = QtWidgets.QFileDialog.getOpenFileName(self, "选择图片", str(Path.cwd()), "Image Files (*.png *.jpg *.jpeg)")
        if fn:
            edit.setText(fn)

    def _load_from_profile(self):
        inputs = resolve_inputs(self.user, self.store.global_settings())
        self.ed_nick.setText(self.user.nickname)
        self.ed_template.setText(self.user.master_template or "")
        self.ed_qr.setText(self.user.qr_code)
        c = inputs.config
        self.sp_x.setValue(c.x)
        self.sp_y.setValue(c.y)
        self.sp_size.setValue(c.size)
        self.sp_zoom.setValue(c.zoom)
        self.sp_crop_x.setValue(c.crop_x)
        self.sp_crop_y.setValue(c.crop_y)

    def _current_config(self) -> PosterConfig:
        return PosterConfig(
            x=self.sp_x.value(),
            y=self.sp_y.value(),
            size=self.sp_size.value(),
            zoom=self.sp_zoom.value(),
            crop_x=self.sp_crop_x.value(),
            crop_y=self.sp_crop_y.value(),
        )

    def render_preview(self):
        inputs = resolve_inputs(
            self.user,
            self.store.global_settings(),
            template_override=self.ed_template.text().strip() or None,
            config_override=self._current_config(),
        )
        qr_code = self.ed_qr.text().strip() or None
        self.btn_render.setEnabled(False)
        self.preview.setText("正在合成海报...")

        thread = QtCore.QThread()
        worker = RenderWorker(self.cfg, inputs.template, qr_code, inputs.config)
        worker.moveToThread(thread)
        thread.started.connect(worker.run)
        worker.finished.connect(self._on_rendered)
        worker.error.connect(self._on_error)
        worker.finished.connect(thread.quit)
        worker.error.connect(thread.quit)
        thread.finished.connect(worker.deleteLater)
        thread.finished.connect(lambda: self.btn_render.setEnabled(True))
        # Keep strong refs until finished
        self._jobs.append((thread, worker))
        thread.finished.connect(lambda: self._jobs.remove((thread, worker)) if (thread, worker) in self._jobs else None)
        thread.start()

    def _on_rendered(self, rendered: RenderedPoster):
        self.rendered = rendered
        qimg = QtGui.QImage.fromData(rendered.png, "PNG")
        pix = QtGui.QPixmap.fromImage(qimg).scaled(
            self.preview.width(), self.preview.height(),
            QtCore.Qt.AspectRatioMode.KeepAspectRatio,
            QtCore.Qt.TransformationMode.SmoothTransformation,
        )
        self.preview.setPixmap(pix)
        self.btn_download.setEnabled(True)
        w, h = rendered.size
        self.statusBar().showMessage(f"{w}x{h}")

    def _on_error(self, msg: str):
        self.preview.setText("海报生成失败")
        QtWidgets.QMessageBox.warning(self, "生成失败", msg)

    def _download(self):
        if self.rendered is None:
            return
        try:
            path = save_poster(self.rendered, self.cfg.output_folder,
                               poster_filename(self.cfg.filename_prefix))
        except OSError as e:
            QtWidgets.QMessageBox.warning(self, "保存失败", str(e))
            return
        self.statusBar().showMessage(f"已保存：{path}")

    def _save_profile(self):
        nickname = self.ed_nick.text().strip()
        if not nickname:
            QtWidgets.QMessageBox.warning(self, "提示", "请填写昵称")
            return
        self.user.nickname = nickname
        self.user.qr_code = self.ed_qr.text().strip()
        self.user.master_template = self.ed_template.text().strip() or None
        self.user.qr_config = self._current_config()
        self.store.save_user(self.user)
        self.cfg.current_user = nickname
        self.cfg.save()

        # Admins may publish the current template as the shared default
        if self.user.has_role("admin") and self.user.master_template:
            ans = QtWidgets.QMessageBox.question(self, "全局默认底图", "是否将此底图设为「全局默认底图」？")
            if ans == QtWidgets.QMessageBox.StandardButton.Yes:
                gs = self.store.global_settings()
                gs.master_template = self.user.master_template
                gs.qr_config = self.user.qr_config
                self.store.save_global_settings(gs, by=self.user)
        self.statusBar().showMessage("设定已保存！")
