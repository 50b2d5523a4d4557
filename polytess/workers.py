"""Pooled tessellation of many polygons.

Geometries cross the pool boundary in packed form, so worker processes
receive plain float64 arrays and rebuild the parameters themselves.  Each
tessellation owns its working data; workers share nothing.
"""

from concurrent.futures import ProcessPoolExecutor

from .polygon import PolygonGeometry, create_geometry


def create_geometry_from_packed(packed):
    """Unpack construction parameters and tessellate them.

    Module-level so process pools can pickle it.
    """
    return create_geometry(PolygonGeometry.unpack(packed))


def create_geometries(geometries, max_workers=None,
                      executor=ProcessPoolExecutor):
    """Tessellate geometries in a worker pool.

    Parameters
    ----------
    geometries : iterable of PolygonGeometry
    max_workers : int, optional
        Pool size; the executor's default (one per core) when omitted.
    executor : type
        A ``concurrent.futures.Executor`` subclass.  Use
        ``ThreadPoolExecutor`` to stay in-process.

    Returns
    -------
    list of Mesh or None
        In input order; None for degenerate polygons.
    """
    packed = [PolygonGeometry.pack(geometry) for geometry in geometries]
    if not packed:
        return []
    with executor(max_workers=max_workers) as pool:
        return list(pool.map(create_geometry_from_packed, packed))
