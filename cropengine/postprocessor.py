"""
Postprocessing for the detection pipeline.

Responsibility:
    Merge the raw windows accepted by the cascade into final detections.
    Raw hits cluster around each object at neighbouring positions and
    scales; each cluster is collapsed into its average rectangle.

Non-goals:
    - No drawing, saving, or display logic.
    - No cascade evaluation.

Hard-coded:
    - Clusters are the connected components of the "close" relation
      (union-find), so grouping is symmetric and transitive and does not
      depend on the order of the raw hits.
"""

from typing import Dict, List

from cropengine.detection import Detection


def is_close(a: Detection, b: Detection, epsilon: float) -> bool:
    """Two windows are close when every coordinate differs by at most
    epsilon times the average size along that axis."""
    avg_width = (a.width + b.width) / 2
    avg_height = (a.height + b.height) / 2

    return (
        abs(a.x - b.x) <= epsilon * avg_width
        and abs(a.y - b.y) <= epsilon * avg_height
        and abs(a.width - b.width) <= epsilon * avg_width
        and abs(a.height - b.height) <= epsilon * avg_height
    )


def group_detections(
    raw: List[Detection],
    min_neighbors: int,
    epsilon: float,
) -> List[Detection]:
    """Cluster raw detections and average each surviving cluster.

    Args:
        raw: Windows accepted by the cascade, in scan order.
        min_neighbors: Clusters with fewer members are discarded.
        epsilon: Relative tolerance passed to is_close().

    Returns:
        One Detection per kept cluster (component-wise mean, rounded
        down), ordered by the first raw hit of each cluster.
    """
    if not raw:
        return []

    parent = list(range(len(raw)))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    for i in range(len(raw)):
        for j in range(i + 1, len(raw)):
            if is_close(raw[i], raw[j], epsilon):
                root_i, root_j = find(i), find(j)
                if root_i != root_j:
                    # Keep the lowest index as root so output order is stable.
                    parent[max(root_i, root_j)] = min(root_i, root_j)

    clusters: Dict[int, List[Detection]] = {}
    for i, detection in enumerate(raw):
        clusters.setdefault(find(i), []).append(detection)

    grouped: List[Detection] = []
    for root in sorted(clusters):
        members = clusters[root]
        if len(members) < min_neighbors:
            continue
        count = len(members)
        grouped.append(Detection(
            x=sum(d.x for d in members) // count,
            y=sum(d.y for d in members) // count,
            width=sum(d.width for d in members) // count,
            height=sum(d.height for d in members) // count,
        ))

    return grouped
