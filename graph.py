"""
Minimal directed graph used to find functions that (directly or indirectly) call themselves.
"""
from typing import Dict, List, Hashable


class Node(object):
    def __init__(self, key : Hashable):
        self.key : Hashable = key
        self.edges : List['Edge'] = []
        self.cyclic : bool = False

    def successors(self):
        return [e.target for e in self.edges]

    def __repr__(self):
        return "Node(" + repr(self.key) + (", cyclic" if self.cyclic else "") + ")"


class Edge(object):
    def __init__(self, source : Node, target : Node):
        self.source : Node = source
        self.target : Node = target


class Graph(object):
    OPEN = 1
    DONE = 2

    def __init__(self):
        self.nodes : Dict[Hashable, Node] = {}
        self.edges : List[Edge] = []

    def add_node(self, key : Hashable) -> Node:
        if key not in self.nodes:
            self.nodes[key] = Node(key)
        return self.nodes[key]

    def get_node(self, key : Hashable) -> Node:
        return self.nodes.get(key)

    def add_edge(self, source : Hashable, target : Hashable) -> Edge:
        src = self.add_node(source)
        dst = self.add_node(target)
        for e in src.edges:
            if e.target is dst:
                return e
        edge = Edge(src, dst)
        src.edges.append(edge)
        self.edges.append(edge)
        return edge

    def is_cyclic(self, key : Hashable) -> bool:
        node = self.nodes.get(key)
        return node is not None and node.cyclic

    def mark_cycles(self) -> None:
        """
        Depth-first walk from every node. When an edge leads back into the current branch, every node of the
        branch is marked cyclic, and so is every node whose walk reaches a node already known to lead to a cycle.
        """
        state = {}
        leads_to_cycle = {}
        for node in list(self.nodes.values()):
            if node.key not in state:
                self.visit(node, state, leads_to_cycle)

    def visit(self, node : Node, state : dict, leads_to_cycle : dict) -> bool:
        state[node.key] = Graph.OPEN
        found = False
        for target in node.successors():
            s = state.get(target.key)
            if s == Graph.OPEN:
                found = True
            elif s == Graph.DONE:
                if leads_to_cycle[target.key]:
                    found = True
            elif self.visit(target, state, leads_to_cycle):
                found = True
        state[node.key] = Graph.DONE
        leads_to_cycle[node.key] = found
        if found:
            node.cyclic = True
        return found
