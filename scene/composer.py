"""
Scene Composer — owns the live Sidr scene graph and its render loop.

One SceneComposer holds every node of the scene: lights, fog, ground,
celestial body, the tree, the garden, badge markers and the night-only
stars and fireflies. Engagement changes rebuild only the groups whose
inputs changed; time-of-day changes update lights and colours in place.

All methods must be called from the render thread. Inputs arriving from
other threads go through api.rest_server.InputMailbox first.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from direct.task import Task
from panda3d.core import (
    AmbientLight, DirectionalLight, Fog, LColor, NodePath, Camera,
)

from garden.layout import layout_badges, layout_garden
from growth.params import (
    DEFAULT_GROWTH_CONFIG, EngagementSnapshot, GrowthConfig, GrowthParameters,
)
from rendering.models import (
    FIREFLY_COLOR, FIREFLY_LIGHT_COLOR,
    build_badge_markers, build_celestial_body, build_firefly_lights,
    build_fireflies, build_garden, build_ground, build_stars, build_tree,
    rewrite_point_column,
)
from scene.ambient import (
    DEFAULT_FRAMING, CameraFraming, Firefly, StarField,
    camera_orbit, firefly_blink, firefly_position, frame_bounds,
    make_fireflies, make_star_field, star_color, star_twinkle, tree_sway,
)
from sky.timeofday import (
    SkyConfig, fill_light_position, get_time_of_day_config, ground_color,
)
from tree.generator import generate_tree

logger = logging.getLogger("sidr_scene")


@dataclass
class SceneConfig:
    fps: float = 30.0
    anim_step: float = 0.008
    fov: float = 40.0
    near: float = 0.1
    far: float = 50.0
    fog_near: float = 9.0
    fog_far: float = 20.0
    star_count: int = 160
    firefly_count: int = 20
    firefly_lights: int = 6
    firefly_light_gain: float = 0.45
    fill_gain: float = 0.15
    growth: GrowthConfig = DEFAULT_GROWTH_CONFIG


def _scaled(color, gain: float) -> LColor:
    return LColor(color[0] * gain, color[1] * gain, color[2] * gain, 1)


# =========================================================
# FRAME LOOP
# =========================================================

class FrameLoop:
    """
    Repeating task on a Panda3D task manager, capped at a fixed rate.

    Frames that arrive sooner than 1/fps after the last rendered one are
    skipped. cancel() removes the task; it is safe to call more than once.
    """

    def __init__(self, task_mgr, callback: Callable[[], None],
                 fps: float = 30.0, name: str = "sidr_frame"):
        self.task_mgr = task_mgr
        self.callback = callback
        self.interval = 1.0 / fps
        self.name = name
        self._task = None
        self._last: Optional[float] = None

    @property
    def active(self) -> bool:
        return self._task is not None

    def start(self):
        if self._task is not None:
            return
        self._last = None
        self._task = self.task_mgr.add(self._step, self.name)

    def cancel(self):
        if self._task is None:
            return
        self.task_mgr.remove(self._task)
        self._task = None

    def tick(self, now: float) -> bool:
        """Run one frame at time `now` (seconds) unless it is too soon."""
        if self._last is not None and now - self._last < self.interval:
            return False
        self._last = now
        self.callback()
        return True

    def _step(self, task):
        self.tick(task.time)
        return Task.cont


# =========================================================
# COMPOSER
# =========================================================

class SceneComposer:
    """Builds, updates and animates the Sidr garden scene."""

    def __init__(self, camera: Optional[NodePath] = None,
                 config: Optional[SceneConfig] = None,
                 set_background: Optional[Callable[[float, float, float], None]] = None):
        self.config = config or SceneConfig()
        self.set_background = set_background
        self.root = NodePath("scene")
        self.camera = camera if camera is not None else self.root.attachNewNode("camera")
        self.lens = None
        node = self.camera.node()
        if isinstance(node, Camera):
            self.lens = node.getLens()
            self.lens.setFov(self.config.fov)
            self.lens.setNearFar(self.config.near, self.config.far)

        self.anim_time = 0.0
        self.framing: CameraFraming = DEFAULT_FRAMING
        self.sky: Optional[SkyConfig] = None
        self.hour_override: Optional[float] = None
        self.params: Optional[GrowthParameters] = None
        self.created = False
        self.disposed = False

        # Scene groups
        self.tree_np: Optional[NodePath] = None
        self.garden_np: Optional[NodePath] = None
        self.badges_np: Optional[NodePath] = None
        self.celestial_np: Optional[NodePath] = None
        self.ground_np: Optional[NodePath] = None

        # Night elements
        self.stars_np: Optional[NodePath] = None
        self.star_field: Optional[StarField] = None
        self.fireflies_np: Optional[NodePath] = None
        self.firefly_data: Optional[List[Firefly]] = None
        self.firefly_lights: List[NodePath] = []

        self._tree_key = None
        self._garden_key: Optional[Tuple[int, int]] = None
        self._badge_key: Optional[int] = None

        self._setup_lights()

    # =========================================================
    # LIFECYCLE
    # =========================================================

    def create(self, snapshot: EngagementSnapshot,
               override: Optional[GrowthParameters] = None,
               hour: Optional[float] = None):
        """Build the full scene for a snapshot and (optional) hour override."""
        if self.disposed:
            raise RuntimeError("SceneComposer has been disposed")
        if self.created:
            logger.warning("create() called on a live scene; rebuilding")

        self.hour_override = hour
        if self.ground_np is None:
            self.ground_np = build_ground()
            self.ground_np.reparentTo(self.root)
        self.apply_sky()
        self.created = True
        self._apply_engagement(snapshot, override, force=True)
        logger.info(f"Scene created (growth={self.params.growth:.3f}, "
                    f"night={self.sky.is_night})")

    def update_engagement(self, snapshot: EngagementSnapshot,
                          override: Optional[GrowthParameters] = None):
        """Rebuild whichever of tree, garden and badges changed."""
        if not self.created or self.disposed:
            return
        self._apply_engagement(snapshot, override, force=False)

    def set_time_override(self, hour: Optional[float]):
        """Fix the scene hour, or follow the wall clock again with None."""
        self.hour_override = hour
        if self.created and not self.disposed:
            self.apply_sky()

    def set_surface_size(self, width: int, height: int):
        if self.lens is not None:
            self.lens.setAspectRatio(width / max(height, 1))

    def dispose(self):
        """Release every node. The host cancels its FrameLoop first."""
        if self.disposed:
            return
        self._destroy_night()
        for np in (self.tree_np, self.garden_np, self.badges_np,
                   self.celestial_np, self.ground_np):
            if np is not None:
                np.removeNode()
        self.tree_np = self.garden_np = self.badges_np = None
        self.celestial_np = self.ground_np = None
        self.root.clearLight()
        self.root.clearFog()
        self.root.removeNode()
        self.disposed = True
        logger.info("Scene disposed")

    # =========================================================
    # ENGAGEMENT
    # =========================================================

    def _apply_engagement(self, snapshot: EngagementSnapshot,
                          override: Optional[GrowthParameters], force: bool):
        params = override or GrowthParameters.from_snapshot(snapshot, self.config.growth)

        if force or params != self._tree_key:
            self._rebuild_tree(params)

        garden_key = (snapshot.total_minutes, snapshot.day_streak)
        if force or garden_key != self._garden_key:
            self._replace("garden_np", build_garden(layout_garden(*garden_key)))
            self._garden_key = garden_key

        if force or snapshot.khatms != self._badge_key:
            self._replace("badges_np", build_badge_markers(layout_badges(snapshot.khatms)))
            self._badge_key = snapshot.khatms

    def _rebuild_tree(self, params: GrowthParameters):
        skeleton = generate_tree(params)
        self._replace("tree_np", build_tree(skeleton, params))
        self.params = params
        self._tree_key = params
        self.frame_camera()
        logger.debug(f"Tree rebuilt: {len(skeleton.segments)} segments, "
                     f"{len(skeleton.leaves)} leaves, {len(skeleton.fruits)} fruits")

    def _replace(self, attr: str, new_np: NodePath):
        old = getattr(self, attr)
        if old is not None:
            old.removeNode()
        new_np.reparentTo(self.root)
        setattr(self, attr, new_np)

    # =========================================================
    # CAMERA
    # =========================================================

    def frame_camera(self):
        """Fit the orbit to the tree's bounds, or fall back to a fixed pose."""
        try:
            bounds = self.tree_np.getTightBounds() if self.tree_np is not None else None
            self.framing = frame_bounds(bounds)
        except Exception as e:
            logger.warning(f"Camera framing failed ({e}); using default pose")
            self.framing = DEFAULT_FRAMING
        self._place_camera()

    def _place_camera(self):
        pos, look = camera_orbit(self.anim_time, self.framing)
        self.camera.setPos(*pos)
        self.camera.lookAt(*look)

    # =========================================================
    # SKY
    # =========================================================

    def _setup_lights(self):
        self.ambient = AmbientLight("sky_ambient")
        self.ambient_np = self.root.attachNewNode(self.ambient)
        self.root.setLight(self.ambient_np)

        # Hemisphere ground term: light from below, pointing up
        self.ground_light = DirectionalLight("ground_ambient")
        self.ground_light_np = self.root.attachNewNode(self.ground_light)
        self.ground_light_np.setHpr(0, 90, 0)
        self.root.setLight(self.ground_light_np)

        self.sun = DirectionalLight("sun_light")
        self.sun_np = self.root.attachNewNode(self.sun)
        self.root.setLight(self.sun_np)

        self.fill = DirectionalLight("fill_light")
        self.fill_np = self.root.attachNewNode(self.fill)
        self.root.setLight(self.fill_np)

        self.fog = Fog("sky_fog")
        self.fog.setMode(Fog.MLinear)
        self.fog.setLinearRange(self.config.fog_near, self.config.fog_far)
        self.root.setFog(self.fog)

    def apply_sky(self):
        """Push the current hour's SkyConfig into lights, fog and ground."""
        sky = get_time_of_day_config(self.hour_override)
        previous = self.sky
        self.sky = sky

        if self.set_background is not None:
            self.set_background(*sky.background)
        self.fog.setColor(*sky.fog)

        self.ambient.setColor(_scaled(sky.sky_ambient, sky.ambient_intensity))
        self.ground_light.setColor(_scaled(sky.ground_ambient, sky.ambient_intensity))

        self.sun.setColor(_scaled(sky.sun_color, sky.sun_intensity))
        self.sun_np.setPos(*sky.body_position)
        self.sun_np.lookAt(0, 0, 0)

        self.fill.setColor(_scaled(sky.sky_ambient, sky.sun_intensity * self.config.fill_gain))
        self.fill_np.setPos(*fill_light_position(sky))
        self.fill_np.lookAt(0, 0, 0)

        if self.celestial_np is None or previous is None or previous.is_night != sky.is_night:
            self._replace("celestial_np", build_celestial_body(sky))
        else:
            self.celestial_np.setPos(*sky.body_position)

        if self.ground_np is not None:
            self.ground_np.setColor(*ground_color(sky), 1)

        if sky.is_night:
            self._create_night()
        else:
            self._destroy_night()

    def _create_night(self):
        t = self.anim_time
        if self.stars_np is None:
            self.star_field = make_star_field(self.config.star_count)
            colors = [star_color(star_twinkle(p, t)) for p in self.star_field.phases]
            self.stars_np = build_stars(self.star_field.positions, colors)
            self.stars_np.reparentTo(self.root)

        if self.fireflies_np is None:
            self.firefly_data = make_fireflies(self.config.firefly_count)
            positions = [firefly_position(f, t) for f in self.firefly_data]
            self.fireflies_np = build_fireflies(positions)
            self.fireflies_np.reparentTo(self.root)

        if not self.firefly_lights:
            count = min(self.config.firefly_lights, len(self.firefly_data))
            self.firefly_lights = build_firefly_lights(count)
            for light_np in self.firefly_lights:
                light_np.reparentTo(self.root)
                self.root.setLight(light_np)
            logger.debug(f"Night elements created ({count} firefly lights)")

    def _destroy_night(self):
        if self.stars_np is not None:
            self.stars_np.removeNode()
            self.stars_np = None
            self.star_field = None
        if self.fireflies_np is not None:
            self.fireflies_np.removeNode()
            self.fireflies_np = None
            self.firefly_data = None
        for light_np in self.firefly_lights:
            self.root.clearLight(light_np)
            light_np.removeNode()
        self.firefly_lights = []

    @property
    def is_night(self) -> bool:
        return self.sky is not None and self.sky.is_night

    # =========================================================
    # PER-FRAME ANIMATION
    # =========================================================

    def update_frame(self):
        """Advance the animation clock one step and animate the scene."""
        if not self.created or self.disposed:
            return
        self.anim_time += self.config.anim_step
        t = self.anim_time

        if self.tree_np is not None:
            roll, pitch = tree_sway(t)
            self.tree_np.setR(roll)
            self.tree_np.setP(pitch)

        self._place_camera()

        if self.stars_np is not None:
            rewrite_point_column(
                self.stars_np, 'color',
                [star_color(star_twinkle(p, t)) for p in self.star_field.phases])

        if self.fireflies_np is not None:
            positions, colors = [], []
            for i, fly in enumerate(self.firefly_data):
                pos = firefly_position(fly, t)
                blink = firefly_blink(fly, t)
                positions.append(pos)
                colors.append(tuple(c * blink for c in FIREFLY_COLOR))
                if i < len(self.firefly_lights):
                    light_np = self.firefly_lights[i]
                    light_np.setPos(*pos)
                    light_np.node().setColor(
                        _scaled(FIREFLY_LIGHT_COLOR, self.config.firefly_light_gain * blink))
            rewrite_point_column(self.fireflies_np, 'vertex', positions)
            rewrite_point_column(self.fireflies_np, 'color', colors)
