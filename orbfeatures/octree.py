"""Quadtree distribution of keypoints over an image region."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from orbfeatures.keypoint import KeyPoint


@dataclass(eq=False)
class ExtractorNode:
    """A rectangular cell of the quadtree and the keypoints that fall in it.

    Corners are integer (x, y) points: upper-left, upper-right, bottom-left
    and bottom-right.
    """

    ul: tuple[int, int]
    ur: tuple[int, int]
    bl: tuple[int, int]
    br: tuple[int, int]
    keys: list[KeyPoint] = field(default_factory=list)
    no_more: bool = False

    def divide(self) -> tuple[ExtractorNode, ExtractorNode, ExtractorNode, ExtractorNode]:
        """Split into four children and hand each keypoint to the child that holds it."""
        half_x = math.ceil((self.ur[0] - self.ul[0]) / 2)
        half_y = math.ceil((self.br[1] - self.ul[1]) / 2)
        mid_x = self.ul[0] + half_x
        mid_y = self.ul[1] + half_y

        n1 = ExtractorNode(ul=self.ul, ur=(mid_x, self.ul[1]),
                           bl=(self.ul[0], mid_y), br=(mid_x, mid_y))
        n2 = ExtractorNode(ul=n1.ur, ur=self.ur, bl=n1.br, br=(self.ur[0], mid_y))
        n3 = ExtractorNode(ul=n1.bl, ur=n1.br, bl=self.bl, br=(n1.br[0], self.bl[1]))
        n4 = ExtractorNode(ul=n3.ur, ur=n2.br, bl=n3.br, br=self.br)

        for kp in self.keys:
            if kp.x < mid_x:
                (n1 if kp.y < mid_y else n3).keys.append(kp)
            elif kp.y < mid_y:
                n2.keys.append(kp)
            else:
                n4.keys.append(kp)

        children = (n1, n2, n3, n4)
        for child in children:
            if len(child.keys) == 1:
                child.no_more = True
        return children


def _initial_nodes(keypoints: list[KeyPoint], width: int, height: int) -> list[ExtractorNode]:
    if height <= 0:
        raise ValueError(f"region height must be positive, got {height}")
    n_ini = math.floor(width / height + 0.5)
    if n_ini <= 0:
        raise ValueError(f"region {width}x{height} is too narrow to distribute keypoints")
    h_x = width / n_ini

    nodes = []
    for i in range(n_ini):
        left = int(h_x * i)
        right = int(h_x * (i + 1))
        nodes.append(ExtractorNode(ul=(left, 0), ur=(right, 0),
                                   bl=(left, height), br=(right, height)))

    for kp in keypoints:
        index = min(max(int(kp.x / h_x), 0), n_ini - 1)
        nodes[index].keys.append(kp)

    kept = []
    for node in nodes:
        if not node.keys:
            continue
        if len(node.keys) == 1:
            node.no_more = True
        kept.append(node)
    return kept


def _refine(nodes: list[ExtractorNode], to_expand: list[ExtractorNode], n_features: int) -> None:
    """Split the most populated nodes first until enough nodes exist."""
    while True:
        prev_size = len(nodes)
        previous = sorted(to_expand, key=lambda node: len(node.keys))
        to_expand = []
        for node in reversed(previous):
            for child in node.divide():
                if child.keys:
                    nodes.insert(0, child)
                    if len(child.keys) > 1:
                        to_expand.append(child)
            nodes.remove(node)
            if len(nodes) >= n_features:
                break
        if len(nodes) >= n_features or len(nodes) == prev_size:
            return


def distribute_octree(keypoints, min_x: int, max_x: int, min_y: int, max_y: int,
                      n_features: int) -> list[KeyPoint]:
    """Spread keypoints evenly, keeping the strongest keypoint of each final cell.

    Keypoint coordinates are relative to (min_x, min_y). Cells are split until
    there are at least ``n_features`` of them or no cell can be split further,
    so the result may hold more keypoints than asked for.
    """
    nodes = _initial_nodes(list(keypoints), max_x - min_x, max_y - min_y)

    while True:
        prev_size = len(nodes)
        pushed: list[ExtractorNode] = []
        kept: list[ExtractorNode] = []
        to_expand: list[ExtractorNode] = []
        for node in nodes:
            if node.no_more:
                kept.append(node)
                continue
            for child in node.divide():
                if child.keys:
                    pushed.append(child)
                    if len(child.keys) > 1:
                        to_expand.append(child)
        nodes = pushed[::-1] + kept

        if len(nodes) >= n_features or len(nodes) == prev_size:
            break
        if len(nodes) + 3 * len(to_expand) > n_features:
            _refine(nodes, to_expand, n_features)
            break

    return [max(node.keys, key=lambda kp: kp.response) for node in nodes]