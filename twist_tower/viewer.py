"""
Interactive pyglet preview of the tower.

Controls
--------
  Left-drag    – orbit
  Right-drag   – pan
  Scroll       – zoom
  Up / Down    – floors +1 / -1
  [ / ]        – sides -1 / +1
  Left / Right – twist max -15° / +15°
  G            – cycle twist gradient
  A            – toggle auto-rotate
  E            – export
  R            – reset camera
  Q / Escape   – quit
"""

import ctypes
import math
import time

import numpy as np

from .builder import TowerMeshBuilder, check_extent
from .exporter import write_mesh
from .params import Gradient, ParameterError

# Seconds a parameter edit must settle before the tower is rebuilt.
REBUILD_DEBOUNCE_S = 0.12

LIGHT_POSITION = (30.0, 60.0, 10.0, 1.0)
LIGHT_DIFFUSE = (1.0, 1.0, 1.0, 1.0)
LIGHT_AMBIENT = (0.45, 0.45, 0.5, 1.0)
BACKGROUND = (0.016, 0.027, 0.07, 1.0)

_GRADIENT_CYCLE = list(Gradient)


def run_viewer(params, export_fmt: str = "obj", out_stem: str = "twist_tower",
               builder: TowerMeshBuilder = None):
    """
    Opens a window showing the tower for ``params`` and rebuilds it whenever
    a key edits the parameters.  The viewer owns every GeneratedMesh it
    builds and releases the previous one as soon as it swaps in a new one.
    """
    try:
        import pyglet
        from pyglet.gl import (
            glEnable, glDisable, glClearColor, glClear, glLoadIdentity,
            glMatrixMode, glLoadMatrixf, glTranslatef, glRotatef,
            glEnableClientState, glDisableClientState,
            glVertexPointer, glNormalPointer, glColorPointer,
            glDrawElements, glLightfv, glColorMaterial, glViewport,
            GL_TRIANGLES, GL_UNSIGNED_INT,
            GL_VERTEX_ARRAY, GL_NORMAL_ARRAY, GL_COLOR_ARRAY,
            GL_FLOAT, GL_COLOR_BUFFER_BIT, GL_DEPTH_BUFFER_BIT,
            GL_DEPTH_TEST, GL_LIGHTING, GL_LIGHT0, GL_NORMALIZE,
            GL_PROJECTION, GL_MODELVIEW,
            GL_AMBIENT_AND_DIFFUSE, GL_FRONT_AND_BACK,
            GL_POSITION, GL_DIFFUSE, GL_AMBIENT,
            GL_COLOR_MATERIAL,
        )
        from pyglet.gl import GLfloat
    except ImportError:
        print("[viewer] pyglet not installed – skipping viewer.")
        print("         Run:  pip install 'pyglet<2'")
        return

    builder = builder or TowerMeshBuilder()
    state = {"params": params, "mesh": None, "arrays": None}

    def upload(mesh):
        """Flatten buffers for client-side GL arrays and cache their pointers."""
        v = np.ascontiguousarray(mesh.positions, dtype=np.float32).ravel()
        n = np.ascontiguousarray(mesh.normals, dtype=np.float32).ravel()
        c = np.ascontiguousarray(mesh.colours, dtype=np.float32).ravel()
        i = np.ascontiguousarray(mesh.indices, dtype=np.uint32).ravel()
        state["arrays"] = {
            "v": v, "n": n, "c": c, "i": i,
            "vp": v.ctypes.data_as(ctypes.c_void_p),
            "np_": n.ctypes.data_as(ctypes.c_void_p),
            "cp": c.ctypes.data_as(ctypes.c_void_p),
            "ip": i.ctypes.data_as(ctypes.c_void_p),
            "count": len(i),
        }

    def rebuild(dt=None):
        mesh = builder.build(state["params"])
        previous = state["mesh"]
        state["mesh"] = mesh
        upload(mesh)
        if previous is not None:
            previous.release()

    def edit(**changes):
        try:
            params = state["params"].replace(**changes)
            check_extent(params)
        except ParameterError as exc:
            print(exc)
            return
        state["params"] = params
        pyglet.clock.unschedule(rebuild)
        pyglet.clock.schedule_once(rebuild, REBUILD_DEBOUNCE_S)

    rebuild()

    # ── camera state ───────────────────────────────────────────────────────
    height = max(state["params"].height, state["params"].slab_thickness)
    init_dist = max(20.0, height * 1.8 + state["params"].base_radius * 3.0)
    cam = {
        "yaw": 35.0,
        "pitch": 20.0,
        "spin": 0.0,
        "dist": init_dist,
        "pan_x": 0.0,
        "pan_y": 0.0,
        "init_dist": init_dist,
    }
    auto_rotate = {"enabled": state["params"].auto_rotate, "speed_deg_s": 20.0}

    config = pyglet.gl.Config(double_buffer=True, depth_size=24, samples=4)
    try:
        window = pyglet.window.Window(
            width=1280, height=720,
            caption="Twisted Tower  |  arrows/[]/G=edit  A=auto-rotate  E=export  R=reset  Q=quit",
            resizable=True, config=config)
    except Exception:
        window = pyglet.window.Window(
            width=1280, height=720,
            caption="Twisted Tower",
            resizable=True)

    def reset_camera():
        cam["yaw"] = 35.0
        cam["pitch"] = 20.0
        cam["spin"] = 0.0
        cam["dist"] = cam["init_dist"]
        cam["pan_x"] = 0.0
        cam["pan_y"] = 0.0

    @window.event
    def on_draw():
        glClear(GL_COLOR_BUFFER_BIT | GL_DEPTH_BUFFER_BIT)

        # ── projection ────────────────────────────────────────────────────
        glMatrixMode(GL_PROJECTION)
        glLoadIdentity()
        aspect = window.width / max(window.height, 1)
        near, far = 0.1, max(500.0, cam["dist"] * 4.0)
        f = 1.0 / math.tan(math.radians(50.0) / 2)
        proj = (GLfloat * 16)(
            f / aspect, 0, 0, 0,
            0, f, 0, 0,
            0, 0, (far + near) / (near - far), -1,
            0, 0, (2 * far * near) / (near - far), 0,
        )
        glLoadMatrixf(proj)

        # ── modelview (Y up) ──────────────────────────────────────────────
        glMatrixMode(GL_MODELVIEW)
        glLoadIdentity()
        glTranslatef(cam["pan_x"], cam["pan_y"], -cam["dist"])
        glRotatef(cam["pitch"], 1, 0, 0)
        glRotatef(cam["yaw"] + cam["spin"], 0, 1, 0)

        # ── lighting ──────────────────────────────────────────────────────
        glEnable(GL_DEPTH_TEST)
        glEnable(GL_LIGHTING)
        glEnable(GL_LIGHT0)
        glEnable(GL_NORMALIZE)
        glEnable(GL_COLOR_MATERIAL)
        glColorMaterial(GL_FRONT_AND_BACK, GL_AMBIENT_AND_DIFFUSE)
        glLightfv(GL_LIGHT0, GL_POSITION, (GLfloat * 4)(*LIGHT_POSITION))
        glLightfv(GL_LIGHT0, GL_DIFFUSE, (GLfloat * 4)(*LIGHT_DIFFUSE))
        glLightfv(GL_LIGHT0, GL_AMBIENT, (GLfloat * 4)(*LIGHT_AMBIENT))

        # ── draw ──────────────────────────────────────────────────────────
        arrays = state["arrays"]
        glEnableClientState(GL_VERTEX_ARRAY)
        glEnableClientState(GL_NORMAL_ARRAY)
        glEnableClientState(GL_COLOR_ARRAY)
        glVertexPointer(3, GL_FLOAT, 0, arrays["vp"])
        glNormalPointer(GL_FLOAT, 0, arrays["np_"])
        glColorPointer(3, GL_FLOAT, 0, arrays["cp"])
        if arrays["count"] > 0:
            glDrawElements(GL_TRIANGLES, arrays["count"], GL_UNSIGNED_INT, arrays["ip"])
        glDisableClientState(GL_VERTEX_ARRAY)
        glDisableClientState(GL_NORMAL_ARRAY)
        glDisableClientState(GL_COLOR_ARRAY)
        glDisable(GL_LIGHTING)
        glDisable(GL_DEPTH_TEST)

    @window.event
    def on_mouse_drag(x, y, dx, dy, buttons, modifiers):
        from pyglet.window import mouse
        if buttons & mouse.LEFT:
            cam["yaw"] += dx * 0.4
            cam["pitch"] -= dy * 0.4
            cam["pitch"] = max(-89, min(89, cam["pitch"]))
        elif buttons & mouse.RIGHT:
            cam["pan_x"] += dx * 0.002 * cam["dist"]
            cam["pan_y"] += dy * 0.002 * cam["dist"]

    @window.event
    def on_mouse_scroll(x, y, scroll_x, scroll_y):
        cam["dist"] -= scroll_y * 0.15 * cam["dist"]
        cam["dist"] = max(1.0, min(cam["init_dist"] * 10, cam["dist"]))

    @window.event
    def on_key_press(symbol, modifiers):
        from pyglet.window import key
        p = state["params"]
        if symbol in (key.Q, key.ESCAPE):
            window.close()
        elif symbol == key.R:
            reset_camera()
        elif symbol == key.A:
            auto_rotate["enabled"] = not auto_rotate["enabled"]
            print(f"[viewer] Auto-rotate: {'ON' if auto_rotate['enabled'] else 'OFF'}")
        elif symbol == key.UP:
            edit(floors=p.floors + 1)
        elif symbol == key.DOWN:
            edit(floors=max(1, p.floors - 1))
        elif symbol == key.BRACKETRIGHT:
            edit(floor_sides=p.floor_sides + 1)
        elif symbol == key.BRACKETLEFT:
            edit(floor_sides=p.floor_sides - 1)
        elif symbol == key.RIGHT:
            edit(twist_max=p.twist_max + 15.0)
        elif symbol == key.LEFT:
            edit(twist_max=p.twist_max - 15.0)
        elif symbol == key.G:
            nxt = _GRADIENT_CYCLE[(_GRADIENT_CYCLE.index(p.twist_gradient) + 1) % len(_GRADIENT_CYCLE)]
            print(f"[viewer] Twist gradient: {nxt.value}")
            edit(twist_gradient=nxt)
        elif symbol == key.E:
            # Export from a fresh build; the live mesh stays with the viewer.
            mesh = builder.build(state["params"], with_normals=False)
            try:
                write_mesh(mesh, out_stem, export_fmt)
            finally:
                mesh.release()

    @window.event
    def on_resize(width, height):
        glViewport(0, 0, width, height)

    glClearColor(*BACKGROUND)
    print("[viewer] Opening 3D viewer …  (E=export  A=auto-rotate  R=reset  Q/Esc=quit)")
    window.has_exit = False
    draw_error_reported = False
    prev_t = time.perf_counter()
    while not window.has_exit:
        now_t = time.perf_counter()
        dt = now_t - prev_t
        prev_t = now_t
        if auto_rotate["enabled"]:
            cam["spin"] += auto_rotate["speed_deg_s"] * dt

        pyglet.clock.tick()
        window.switch_to()
        window.dispatch_events()
        try:
            window.dispatch_event("on_draw")
            window.flip()
        except Exception:
            if not draw_error_reported:
                import traceback
                print("[viewer] Error during draw; keeping window open for debugging:")
                traceback.print_exc()
                draw_error_reported = True

    if state["mesh"] is not None:
        state["mesh"].release()
        state["mesh"] = None
        state["arrays"] = None
