"""Client pixel → viewBox mapping for a container that crops the canvas to fill."""

from weatherlens.models import CanvasPoint, ContainerRect, ViewBox


def client_to_canvas(
    rect: ContainerRect | None,
    client_x: float,
    client_y: float,
    view_box: ViewBox,
) -> CanvasPoint | None:
    """Map a client-space point into viewBox coordinates.

    The canvas is scaled by ``max(rect.width / W, rect.height / H)`` so it
    covers the whole container, centred, with the overflow cropped equally
    on both sides of the longer axis (SVG ``xMidYMid slice``).

    Args:
        rect: Container bounding box in client pixels, or None if not mounted.
        client_x: Pointer x in client pixels.
        client_y: Pointer y in client pixels.
        view_box: Intrinsic canvas size.

    Returns:
        The viewBox point, or None when there is no laid-out container.
    """
    if rect is None or rect.width <= 0 or rect.height <= 0:
        return None

    scale = max(rect.width / view_box.width, rect.height / view_box.height)
    offset_x = (rect.width - view_box.width * scale) / 2
    offset_y = (rect.height - view_box.height * scale) / 2
    return CanvasPoint(
        x=(client_x - rect.left - offset_x) / scale,
        y=(client_y - rect.top - offset_y) / scale,
    )
