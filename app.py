"""
Sidr Garden - Main Application
Panda3D-based 3D desktop viewer for the Sidr tree.

Controls:
  F1              : Toggle developer mode
  Up / Down       : Growth slider (developer mode)
  Left / Right    : Time of day -/+ 30 min
  N               : Follow the wall clock again
  1 - 5           : Preset snapshots (seed .. ancient tree)
  Esc             : Quit
"""

import sys
import logging
from typing import Optional

from direct.showbase.ShowBase import ShowBase
from direct.task import Task
from direct.gui.OnscreenText import OnscreenText

from panda3d.core import (
    TextNode, AntialiasAttrib,
    loadPrcFileData,
)

# Configure Panda3D before importing ShowBase internals
loadPrcFileData("", """
    window-title Sidr Garden
    win-size 960 720
    show-frame-rate-meter 0
    sync-video 0
    textures-power-2 none
""")

from api.rest_server import GardenAPI, InputMailbox, PendingInputs
from growth.params import EngagementSnapshot, GrowthParameters, GrowthSource
from growth.stages import classify, stage_label_for_growth
from scene.composer import FrameLoop, SceneComposer, SceneConfig
from sky.timeofday import current_hour

logger = logging.getLogger("sidr_app")

API_PORT = 8430
GROWTH_STEP = 0.05
HOUR_STEP = 0.5
CLOCK_REFRESH = 60.0

PRESETS = {
    "1": EngagementSnapshot(),
    "2": EngagementSnapshot(total_pages=45, total_minutes=90, day_streak=5),
    "3": EngagementSnapshot(total_pages=300, total_minutes=420, day_streak=14),
    "4": EngagementSnapshot(total_pages=2000, total_minutes=2400, day_streak=30, khatms=3),
    "5": EngagementSnapshot(total_pages=6100, total_minutes=9000, day_streak=60, khatms=10),
}


class GardenViewerApp(ShowBase):
    """Main application class."""

    def __init__(self, snapshot: Optional[EngagementSnapshot] = None,
                 api_port: int = API_PORT, config: Optional[SceneConfig] = None):
        ShowBase.__init__(self)

        print("\n" + "="*60)
        print("  SIDR GARDEN - Quran Reading Tree")
        print("="*60)

        # === ENGAGEMENT STATE ===
        self.snapshot = snapshot or EngagementSnapshot()
        self.api_override: Optional[GrowthParameters] = None
        self.dev_mode = False
        self.dev_growth = 0.5
        self.hour_override: Optional[float] = None

        # === SERVERS ===
        print("\nStarting servers...")
        self.mailbox = InputMailbox()
        self.api_server = GardenAPI(self.mailbox, port=api_port)
        self.api_server.start()

        # === SCENE SETUP ===
        self._setup_scene(config or SceneConfig())
        self._setup_hud()

        # === INPUT ===
        self._setup_controls()

        # === MAIN LOOP ===
        self.frame_loop = FrameLoop(self.taskMgr, self._update, fps=self.composer.config.fps)
        self.frame_loop.start()
        self.taskMgr.doMethodLater(CLOCK_REFRESH, self._refresh_clock, "sidr_clock")

        print("\n" + "-"*60)
        print("  Controls:")
        print("    F1                : Toggle developer mode")
        print("    Up / Down         : Growth slider (developer mode)")
        print("    Left / Right      : Time of day")
        print("    N                 : Follow wall clock")
        print("    1 - 5             : Preset snapshots")
        print("    ESC               : Quit")
        print("-"*60)
        print(f"\n  REST API:     http://localhost:{api_port}")
        print("="*60 + "\n")

    # =========================================================
    # SCENE SETUP
    # =========================================================

    def _setup_scene(self, config: SceneConfig):
        """Create the composer and build the first scene."""
        self.disableMouse()
        self.render.setAntialias(AntialiasAttrib.MAuto)

        self.composer = SceneComposer(
            camera=self.cam,
            config=config,
            set_background=lambda r, g, b: self.setBackgroundColor(r, g, b, 1),
        )
        self.composer.root.reparentTo(self.render)
        if self.win is not None:
            self.composer.set_surface_size(self.win.getXSize(), self.win.getYSize())

        try:
            self.composer.create(self.snapshot, self._active_override(), self.hour_override)
        except Exception:
            logger.exception("Scene creation failed; continuing with an empty scene")

        self._publish_status()

    def _active_override(self) -> Optional[GrowthParameters]:
        if self.dev_mode:
            return GrowthParameters.from_growth(self.dev_growth)
        return self.api_override

    def _rebuild(self):
        try:
            self.composer.update_engagement(self.snapshot, self._active_override())
        except Exception:
            logger.exception("Scene rebuild failed")
        self._publish_status()

    # =========================================================
    # HUD
    # =========================================================

    def _setup_hud(self):
        """Create HUD overlay text."""
        self.hud_texts = {}

        def add_text(name, pos, align=TextNode.ALeft, scale=0.045):
            t = OnscreenText(
                text="", pos=pos, scale=scale,
                fg=(1, 1, 1, 1), shadow=(0, 0, 0, 0.8),
                align=align, mayChange=True,
                parent=self.aspect2d,
            )
            self.hud_texts[name] = t
            return t

        # Top left - stage
        add_text("stage", (-1.3, 0.9), scale=0.07)
        add_text("description", (-1.3, 0.83))
        add_text("progress", (-1.3, 0.76))

        # Top right - sky
        add_text("time", (1.3, 0.9), TextNode.ARight)

        # Bottom - stats / developer mode
        add_text("stats", (0, -0.9), TextNode.ACenter, 0.04)
        add_text("dev", (0, -0.83), TextNode.ACenter, 0.045)

        self._update_hud()

    def _status(self) -> dict:
        """Stage and sky summary shared by the HUD and GET /status."""
        snap = self.snapshot
        override = self._active_override()
        sky = self.composer.sky
        status = {
            "growth": round(self.composer.params.growth, 4) if self.composer.params else None,
            "source": override.source.value if override else GrowthSource.SNAPSHOT.value,
            "hour": round(sky.hour, 3) if sky else None,
            "hour_override": self.hour_override,
            "is_night": sky.is_night if sky else None,
            "total_pages": snap.total_pages,
            "total_minutes": snap.total_minutes,
            "day_streak": snap.day_streak,
            "khatms": snap.khatms,
        }
        if override is not None:
            status.update(stage=None, label=stage_label_for_growth(override.growth),
                          description="", emoji="", progress=None, next_stage=None)
        else:
            stage_status = classify(snap.total_pages, snap.khatms)
            status.update(
                stage=stage_status.stage.key,
                label=stage_status.stage.label,
                description=stage_status.stage.description,
                emoji=stage_status.stage.emoji,
                progress=round(stage_status.progress, 4),
                next_stage=stage_status.next_stage.key if stage_status.next_stage else None,
            )
        return status

    def _publish_status(self):
        self.mailbox.publish_status(self._status())

    def _update_hud(self):
        """Refresh HUD text after inputs change."""
        status = self._status()
        texts = self.hud_texts

        texts["stage"].setText(status["label"])
        texts["description"].setText(status["description"])
        if status["progress"] is None:
            texts["progress"].setText(f"Growth: {status['growth'] or 0:.0%}")
        elif status["next_stage"] is None:
            texts["progress"].setText("Fully Grown")
        else:
            texts["progress"].setText(f"Progress to next stage: {status['progress']:.0%}")

        if status["hour"] is not None:
            hh, mm = divmod(int(round(status["hour"] * 60)) % (24 * 60), 60)
            phase = "Night" if status["is_night"] else "Day"
            pinned = "" if self.hour_override is None else " (fixed)"
            texts["time"].setText(f"{phase} {hh:02d}:{mm:02d}{pinned}")

        texts["stats"].setText(
            f"Pages: {status['total_pages']} | Minutes: {status['total_minutes']} | "
            f"Streak: {status['day_streak']} | Khatms: {status['khatms']}")

        if self.dev_mode:
            texts["dev"].setText(f"DEV  growth {self.dev_growth:.2f}  [Up/Down]")
        else:
            texts["dev"].setText("")

    # =========================================================
    # CONTROLS
    # =========================================================

    def _setup_controls(self):
        """Set up keyboard input."""
        self.accept("f1", self._on_toggle_dev)
        self.accept("arrow_up", self._on_growth, [GROWTH_STEP])
        self.accept("arrow_up-repeat", self._on_growth, [GROWTH_STEP])
        self.accept("arrow_down", self._on_growth, [-GROWTH_STEP])
        self.accept("arrow_down-repeat", self._on_growth, [-GROWTH_STEP])
        self.accept("arrow_right", self._on_hour, [HOUR_STEP])
        self.accept("arrow_right-repeat", self._on_hour, [HOUR_STEP])
        self.accept("arrow_left", self._on_hour, [-HOUR_STEP])
        self.accept("arrow_left-repeat", self._on_hour, [-HOUR_STEP])
        self.accept("n", self._set_hour, [None])
        for key in PRESETS:
            self.accept(key, self._on_preset, [key])
        self.accept("window-event", self._on_window_event)
        self.accept("escape", self._quit)

    def _on_toggle_dev(self):
        self.dev_mode = not self.dev_mode
        logger.info(f"Developer mode {'on' if self.dev_mode else 'off'}")
        self._rebuild()
        self._update_hud()

    def _on_growth(self, delta: float):
        if not self.dev_mode:
            return
        self.dev_growth = max(0.0, min(1.0, round(self.dev_growth + delta, 2)))
        self._rebuild()
        self._update_hud()

    def _on_hour(self, delta: float):
        base = self.hour_override
        if base is None:
            base = self.composer.sky.hour if self.composer.sky else current_hour()
        self._set_hour((base + delta) % 24.0)

    def _set_hour(self, hour: Optional[float]):
        self.hour_override = hour
        self.composer.set_time_override(hour)
        self._publish_status()
        self._update_hud()

    def _on_preset(self, key: str):
        self.snapshot = PRESETS[key]
        self._rebuild()
        self._update_hud()

    def _on_window_event(self, window):
        if window is not None and window == self.win:
            self.composer.set_surface_size(window.getXSize(), window.getYSize())

    # =========================================================
    # MAIN UPDATE LOOP
    # =========================================================

    def _update(self):
        """Apply pending API inputs, then animate one frame."""
        pending = self.mailbox.drain()
        if not pending.empty:
            self._apply_inputs(pending)
        self.composer.update_frame()

    def _apply_inputs(self, pending: PendingInputs):
        if pending.hour_changed:
            self._set_hour(pending.hour)
        if pending.snapshot is not None or pending.override_changed:
            if pending.snapshot is not None:
                self.snapshot = pending.snapshot
            if pending.override_changed:
                self.api_override = pending.override
            self._rebuild()
        self._update_hud()

    def _refresh_clock(self, task):
        """Follow the wall clock while no hour is fixed."""
        if self.hour_override is None and not self.composer.disposed:
            self.composer.apply_sky()
            self._publish_status()
            self._update_hud()
        return Task.again

    def _quit(self):
        self.frame_loop.cancel()
        self.taskMgr.remove("sidr_clock")
        self.composer.dispose()
        sys.exit()


def main():
    """Entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    app = GardenViewerApp()
    app.run()


if __name__ == "__main__":
    main()
