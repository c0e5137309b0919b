import itertools

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import matplotlib.patches as patches

from routing import AISLE_COST, ENTRANCE


def walk_points(path):
    """Expand a visiting order into the corner points actually walked (aisle head between aisles)."""
    if not path:
        return []
    points = [path[0]]
    for prev, nxt in zip(path, path[1:]):
        if prev.aisle != nxt.aisle:
            points.append((prev.aisle, 0))
            points.append((nxt.aisle, 0))
        points.append(nxt)
    return [(a * AISLE_COST, b) for a, b in points]


def plot_picking_paths(paths, out_path, title="Picking paths"):
    locations = sorted({loc for r in paths.values() for loc in r.path if loc != ENTRANCE})
    max_aisle = max((loc.aisle for loc in locations), default=1)
    max_bay = max((loc.bay for loc in locations), default=1)

    fig, ax = plt.subplots(figsize=(max(6, max_aisle * 1.5), max(4, max_bay * 0.4)))
    rack_width = 0.6

    for aisle in range(1, max_aisle + 1):
        x = aisle * AISLE_COST
        ax.add_patch(patches.Rectangle((x - rack_width - 0.2, 0.5), rack_width, max_bay,
                                       linewidth=1, edgecolor='black', facecolor='lightblue'))
        ax.text(x, max_bay + 1.2, f"Aisle {aisle}", ha='center', va='bottom', fontsize=9, color='navy')

    ax.add_patch(patches.Rectangle((-0.5, -0.5), max_aisle * AISLE_COST + 1, 0.5,
                                   linewidth=0, facecolor='#f0e68c', alpha=0.5, zorder=0))
    ax.plot([0], [0], 's', color='black', markersize=8)
    ax.text(0.2, -0.4, "Entrance", fontsize=9, va='top')

    colors = itertools.cycle(['red', 'blue', 'green', 'orange', 'purple'])
    for strategy, result in paths.items():
        pts = walk_points(result.path)
        xs = [p[0] for p in pts]
        ys = [p[1] for p in pts]
        color = next(colors)
        ax.plot(xs, ys, '-', color=color, linewidth=2, alpha=0.6,
                label=f"{strategy.value}: {result.total_distance}")
        ax.plot([loc.aisle * AISLE_COST for loc in result.path[1:]], [loc.bay for loc in result.path[1:]],
                'o', color=color, markersize=5, alpha=0.8)

    ax.set_xlim(-1, max_aisle * AISLE_COST + 2)
    ax.set_ylim(-1.5, max_bay + 2.5)
    ax.set_xlabel("aisle")
    ax.set_ylabel("bay")
    ax.legend(loc='upper right', fontsize=8)
    ax.set_title(title)
    fig.savefig(out_path, bbox_inches='tight')
    plt.close(fig)
    return out_path
