"""
Quaternion and vector helpers for branch construction.

HOT PATH — pure Python math on tuples, no numpy allocations.
Quaternions are (w, x, y, z); vectors are (x, y, z).

Coordinate system (Panda3D):
  X = right, Y = forward, Z = up
"""

import math
from typing import Tuple

Vec3 = Tuple[float, float, float]
Quat = Tuple[float, float, float, float]

UP: Vec3 = (0.0, 0.0, 1.0)
IDENTITY: Quat = (1.0, 0.0, 0.0, 0.0)


def vec_add(a: Vec3, b: Vec3) -> Vec3:
    return a[0] + b[0], a[1] + b[1], a[2] + b[2]


def vec_scale(a: Vec3, s: float) -> Vec3:
    return a[0] * s, a[1] * s, a[2] * s


def vec_lerp(a: Vec3, b: Vec3, t: float) -> Vec3:
    return (a[0] + (b[0] - a[0]) * t,
            a[1] + (b[1] - a[1]) * t,
            a[2] + (b[2] - a[2]) * t)


def vec_cross(a: Vec3, b: Vec3) -> Vec3:
    return (a[1] * b[2] - a[2] * b[1],
            a[2] * b[0] - a[0] * b[2],
            a[0] * b[1] - a[1] * b[0])


def vec_dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def vec_length(a: Vec3) -> float:
    return math.sqrt(a[0] * a[0] + a[1] * a[1] + a[2] * a[2])


def vec_normalize(a: Vec3) -> Vec3:
    n = vec_length(a)
    if n < 1e-12:
        return UP
    return a[0] / n, a[1] / n, a[2] / n


def quat_multiply(a: Quat, b: Quat) -> Quat:
    aw, ax, ay, az = a
    bw, bx, by, bz = b
    return (aw * bw - ax * bx - ay * by - az * bz,
            aw * bx + ax * bw + ay * bz - az * by,
            aw * by - ax * bz + ay * bw + az * bx,
            aw * bz + ax * by - ay * bx + az * bw)


def quat_normalize(q: Quat) -> Quat:
    n = math.sqrt(q[0] * q[0] + q[1] * q[1] + q[2] * q[2] + q[3] * q[3])
    if n < 1e-12:
        return IDENTITY
    return q[0] / n, q[1] / n, q[2] / n, q[3] / n


def quat_from_axis_angle(axis: Vec3, angle: float) -> Quat:
    half = angle * 0.5
    s = math.sin(half)
    return math.cos(half), axis[0] * s, axis[1] * s, axis[2] * s


def quat_from_euler_xyz(ex: float, ey: float, ez: float) -> Quat:
    """Intrinsic X, then Y, then Z rotation."""
    c1, s1 = math.cos(ex * 0.5), math.sin(ex * 0.5)
    c2, s2 = math.cos(ey * 0.5), math.sin(ey * 0.5)
    c3, s3 = math.cos(ez * 0.5), math.sin(ez * 0.5)
    return (c1 * c2 * c3 - s1 * s2 * s3,
            s1 * c2 * c3 + c1 * s2 * s3,
            c1 * s2 * c3 - s1 * c2 * s3,
            c1 * c2 * s3 + s1 * s2 * c3)


def quat_from_unit_vectors(v_from: Vec3, v_to: Vec3) -> Quat:
    """Shortest rotation taking unit vector v_from onto unit vector v_to."""
    r = vec_dot(v_from, v_to) + 1.0
    if r < 1e-9:
        # Opposite vectors: rotate 180° about any perpendicular axis
        if abs(v_from[0]) > abs(v_from[2]):
            q = (0.0, -v_from[1], v_from[0], 0.0)
        else:
            q = (0.0, 0.0, -v_from[2], v_from[1])
        return quat_normalize(q)
    cx, cy, cz = vec_cross(v_from, v_to)
    return quat_normalize((r, cx, cy, cz))


def quat_rotate(q: Quat, v: Vec3) -> Vec3:
    """Apply rotation q to vector v."""
    qw, qx, qy, qz = q
    vx, vy, vz = v
    # t = 2 * cross(q.xyz, v)
    tx = 2.0 * (qy * vz - qz * vy)
    ty = 2.0 * (qz * vx - qx * vz)
    tz = 2.0 * (qx * vy - qy * vx)
    return (vx + qw * tx + (qy * tz - qz * ty),
            vy + qw * ty + (qz * tx - qx * tz),
            vz + qw * tz + (qx * ty - qy * tx))
