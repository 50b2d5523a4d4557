"""Ear-clipping triangulation of 2D polygons with holes.

Vertices live in a circular doubly linked list.  Holes are merged into the
outer boundary through bridge edges to a visible outer vertex, then the
merged ring is clipped ear by ear.  When clipping stalls, a second pass
filters collinear points and cures small self-intersections, and a final
pass splits the remaining ring along a valid diagonal.
"""

import numpy as np


class _Node:
    __slots__ = ("i", "x", "y", "prev", "next", "steiner")

    def __init__(self, i, x, y):
        self.i = i
        self.x = x
        self.y = y
        self.prev = None
        self.next = None
        self.steiner = False


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------

def earcut(coords, hole_indices=None):
    """Triangulate a polygon given as 2D coordinates.

    Parameters
    ----------
    coords : array-like
        (N, 2) vertex coordinates: the outer ring followed by each hole.
    hole_indices : sequence of int, optional
        Vertex index at which each hole starts.

    Returns
    -------
    list of int
        Flat triangle indices into ``coords``.

    Examples
    --------
    >>> earcut([[0, 0], [1, 0], [1, 1], [0, 1]])
    [2, 3, 0, 0, 1, 2]
    """
    xy = np.asarray(coords, dtype=np.float64).reshape(-1, 2)
    xs = xy[:, 0].tolist()
    ys = xy[:, 1].tolist()
    holes = list(hole_indices) if hole_indices is not None else []

    outer_len = holes[0] if holes else len(xs)
    outer_node = _linked_list(xs, ys, 0, outer_len, True)
    triangles = []
    if outer_node is None or outer_node.next is outer_node.prev:
        return triangles

    if holes:
        outer_node = _eliminate_holes(xs, ys, holes, outer_node)

    _earcut_linked(outer_node, triangles, 0)
    return triangles


def triangulate(positions_2d, hole_indices=None):
    """Triangulate a ring-with-holes for mesh building.

    A ring with at least three distinct vertices always yields a triangle
    list: when clipping produces nothing (all vertices collinear) the first
    three vertices are used so the ring still contributes its boundary.

    Returns
    -------
    np.ndarray or None
        Flat int32 indices, or None when fewer than three vertices exist.
    """
    if len(positions_2d) < 3:
        return None
    indices = earcut(positions_2d, hole_indices)
    if len(indices) < 3:
        indices = [0, 1, 2]
    return np.asarray(indices, dtype=np.int32)


# ---------------------------------------------------------------------------
# Linked list construction
# ---------------------------------------------------------------------------

def _signed_area(xs, ys, start, end):
    total = 0.0
    j = end - 1
    for i in range(start, end):
        total += (xs[j] - xs[i]) * (ys[i] + ys[j])
        j = i
    return total


def _linked_list(xs, ys, start, end, clockwise):
    last = None
    if clockwise == (_signed_area(xs, ys, start, end) > 0):
        for i in range(start, end):
            last = _insert_node(i, xs[i], ys[i], last)
    else:
        for i in range(end - 1, start - 1, -1):
            last = _insert_node(i, xs[i], ys[i], last)

    if last is not None and _equals(last, last.next):
        _remove_node(last)
        last = last.next
    return last


def _insert_node(i, x, y, last):
    p = _Node(i, x, y)
    if last is None:
        p.prev = p
        p.next = p
    else:
        p.next = last.next
        p.prev = last
        last.next.prev = p
        last.next = p
    return p


def _remove_node(p):
    p.next.prev = p.prev
    p.prev.next = p.next


def _filter_points(start, end=None):
    """Drop duplicate and collinear points between ``start`` and ``end``."""
    if start is None:
        return start
    if end is None:
        end = start

    p = start
    while True:
        again = False
        if not p.steiner and (_equals(p, p.next)
                              or _area(p.prev, p, p.next) == 0):
            _remove_node(p)
            p = end = p.prev
            if p is p.next:
                break
            again = True
        else:
            p = p.next
        if not again and p is end:
            break
    return end


# ---------------------------------------------------------------------------
# Ear clipping
# ---------------------------------------------------------------------------

def _earcut_linked(ear, triangles, pass_):
    if ear is None:
        return

    stop = ear
    while ear.prev is not ear.next:
        prev = ear.prev
        nxt = ear.next

        if _is_ear(ear):
            triangles.extend((prev.i, ear.i, nxt.i))
            _remove_node(ear)
            # skipping the next vertex leaves fewer slivers
            ear = nxt.next
            stop = nxt.next
            continue

        ear = nxt
        if ear is stop:
            if pass_ == 0:
                _earcut_linked(_filter_points(ear), triangles, 1)
            elif pass_ == 1:
                ear = _cure_local_intersections(_filter_points(ear), triangles)
                _earcut_linked(ear, triangles, 2)
            else:
                _split_earcut(ear, triangles)
            break


def _is_ear(ear):
    a = ear.prev
    b = ear
    c = ear.next
    if _area(a, b, c) >= 0:
        return False

    p = ear.next.next
    while p is not ear.prev:
        if (_point_in_triangle(a.x, a.y, b.x, b.y, c.x, c.y, p.x, p.y)
                and _area(p.prev, p, p.next) >= 0):
            return False
        p = p.next
    return True


def _cure_local_intersections(start, triangles):
    p = start
    while True:
        a = p.prev
        b = p.next.next
        if (not _equals(a, b) and _intersects(a, p, p.next, b)
                and _locally_inside(a, b) and _locally_inside(b, a)):
            triangles.extend((a.i, p.i, b.i))
            _remove_node(p)
            _remove_node(p.next)
            p = start = b
        p = p.next
        if p is start:
            break
    return _filter_points(p)


def _split_earcut(start, triangles):
    a = start
    while True:
        b = a.next.next
        while b is not a.prev:
            if a.i != b.i and _is_valid_diagonal(a, b):
                c = _split_polygon(a, b)
                a = _filter_points(a, a.next)
                c = _filter_points(c, c.next)
                _earcut_linked(a, triangles, 0)
                _earcut_linked(c, triangles, 0)
                return
            b = b.next
        a = a.next
        if a is start:
            break


# ---------------------------------------------------------------------------
# Hole bridging
# ---------------------------------------------------------------------------

def _eliminate_holes(xs, ys, holes, outer_node):
    queue = []
    n = len(xs)
    for k, start in enumerate(holes):
        end = holes[k + 1] if k < len(holes) - 1 else n
        hole = _linked_list(xs, ys, start, end, False)
        if hole is None:
            continue
        if hole is hole.next:
            hole.steiner = True
        queue.append(_get_leftmost(hole))

    queue.sort(key=lambda node: node.x)
    for hole in queue:
        outer_node = _eliminate_hole(hole, outer_node)
        outer_node = _filter_points(outer_node, outer_node.next)
    return outer_node


def _eliminate_hole(hole, outer_node):
    bridge = _find_hole_bridge(hole, outer_node)
    if bridge is None:
        return outer_node

    bridge_reverse = _split_polygon(bridge, hole)
    filtered = _filter_points(bridge, bridge.next)
    _filter_points(bridge_reverse, bridge_reverse.next)
    return filtered if outer_node is bridge else outer_node


def _find_hole_bridge(hole, outer_node):
    """Outer vertex that the hole's leftmost vertex can connect to."""
    p = outer_node
    hx = hole.x
    hy = hole.y
    qx = -np.inf
    m = None

    # segment hit by a ray cast left from the hole; its leftmost end is the
    # candidate
    while True:
        if hy <= p.y and hy >= p.next.y and p.next.y != p.y:
            x = p.x + (hy - p.y) * (p.next.x - p.x) / (p.next.y - p.y)
            if hx >= x > qx:
                qx = x
                if x == hx:
                    if hy == p.y:
                        return p
                    if hy == p.next.y:
                        return p.next
                m = p if p.x < p.next.x else p.next
        p = p.next
        if p is outer_node:
            break

    if m is None:
        return None
    if hx == qx:
        return m

    # vertices inside the triangle (hole point, hit point, candidate) block
    # the bridge; take the one with the smallest angle to the ray instead
    stop = m
    mx = m.x
    my = m.y
    tan_min = np.inf
    p = m
    while True:
        if (hx >= p.x >= mx and hx != p.x
                and _point_in_triangle(hx if hy < my else qx, hy, mx, my,
                                       qx if hy < my else hx, hy, p.x, p.y)):
            tan = abs(hy - p.y) / (hx - p.x)
            if _locally_inside(p, hole) and (
                    tan < tan_min
                    or (tan == tan_min
                        and (p.x > m.x
                             or (p.x == m.x and _sector_contains_sector(m, p))))):
                m = p
                tan_min = tan
        p = p.next
        if p is stop:
            break
    return m


def _sector_contains_sector(m, p):
    return _area(m.prev, m, p.prev) < 0 and _area(p.next, m, m.next) < 0


def _get_leftmost(start):
    p = start
    leftmost = start
    while True:
        if p.x < leftmost.x or (p.x == leftmost.x and p.y < leftmost.y):
            leftmost = p
        p = p.next
        if p is start:
            break
    return leftmost


def _split_polygon(a, b):
    """Link ``a`` and ``b`` with a diagonal, duplicating both vertices.

    Returns the copy of ``b`` that heads the second ring.
    """
    a2 = _Node(a.i, a.x, a.y)
    b2 = _Node(b.i, b.x, b.y)
    an = a.next
    bp = b.prev

    a.next = b
    b.prev = a

    a2.next = an
    an.prev = a2

    b2.next = a2
    a2.prev = b2

    bp.next = b2
    b2.prev = bp
    return b2


# ---------------------------------------------------------------------------
# Geometric predicates
# ---------------------------------------------------------------------------

def _area(p, q, r):
    return (q.y - p.y) * (r.x - q.x) - (q.x - p.x) * (r.y - q.y)


def _equals(p1, p2):
    return p1.x == p2.x and p1.y == p2.y


def _point_in_triangle(ax, ay, bx, by, cx, cy, px, py):
    return ((cx - px) * (ay - py) - (ax - px) * (cy - py) >= 0
            and (ax - px) * (by - py) - (bx - px) * (ay - py) >= 0
            and (bx - px) * (cy - py) - (cx - px) * (by - py) >= 0)


def _sign(value):
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


def _on_segment(p, q, r):
    return (min(p.x, r.x) <= q.x <= max(p.x, r.x)
            and min(p.y, r.y) <= q.y <= max(p.y, r.y))


def _intersects(p1, q1, p2, q2):
    o1 = _sign(_area(p1, q1, p2))
    o2 = _sign(_area(p1, q1, q2))
    o3 = _sign(_area(p2, q2, p1))
    o4 = _sign(_area(p2, q2, q1))

    if o1 != o2 and o3 != o4:
        return True
    if o1 == 0 and _on_segment(p1, p2, q1):
        return True
    if o2 == 0 and _on_segment(p1, q2, q1):
        return True
    if o3 == 0 and _on_segment(p2, p1, q2):
        return True
    if o4 == 0 and _on_segment(p2, q1, q2):
        return True
    return False


def _intersects_polygon(a, b):
    p = a
    while True:
        if (p.i != a.i and p.next.i != a.i and p.i != b.i
                and p.next.i != b.i and _intersects(p, p.next, a, b)):
            return True
        p = p.next
        if p is a:
            break
    return False


def _locally_inside(a, b):
    if _area(a.prev, a, a.next) < 0:
        return _area(a, b, a.next) >= 0 and _area(a, a.prev, b) >= 0
    return _area(a, b, a.prev) < 0 or _area(a, a.next, b) < 0


def _middle_inside(a, b):
    p = a
    inside = False
    px = (a.x + b.x) / 2
    py = (a.y + b.y) / 2
    while True:
        if ((p.y > py) != (p.next.y > py) and p.next.y != p.y
                and px < (p.next.x - p.x) * (py - p.y) / (p.next.y - p.y) + p.x):
            inside = not inside
        p = p.next
        if p is a:
            break
    return inside


def _is_valid_diagonal(a, b):
    if a.next.i == b.i or a.prev.i == b.i or _intersects_polygon(a, b):
        return False
    if (_locally_inside(a, b) and _locally_inside(b, a)
            and _middle_inside(a, b)
            and (_area(a.prev, a, b.prev) != 0 or _area(a, b.prev, b) != 0)):
        return True
    return (_equals(a, b) and _area(a.prev, a, a.next) > 0
            and _area(b.prev, b, b.next) > 0)
