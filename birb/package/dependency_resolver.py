"""
Dependency Resolution System for birb

Computes the transitive dependency closure of a package in install order:
every dependency comes before any package depending on it. Dependencies are
plain names; there is no version model.
"""

import logging
from typing import Any, Dict, Iterable, List, Set

import networkx as nx

from .models import PackageSpec
from .repository import RepositorySet
from ..exceptions import DependencyCycleError

logger = logging.getLogger('BIRB.package.dependency_resolver')


class DependencyResolver:
    """Depth first resolver over declared dependencies"""

    def __init__(self, repositories: RepositorySet):
        self.repositories = repositories

    def _load(self, pkg_name: str) -> PackageSpec:
        return self.repositories.get(pkg_name).validate_required()

    def resolve(self, root: str) -> List[str]:
        """
        Resolve the dependencies of a package

        Args:
            root: Package to resolve

        Returns:
            Every transitive dependency exactly once, dependencies first.
            The root itself is not included.

        Raises:
            MissingPackageError: A name is absent from every repository
            InvalidPackageSpecError: A declaration lacks a required field
            DependencyCycleError: A cycle is reachable from root
        """
        root_spec = self._load(root)

        order: List[str] = []
        visited: Set[str] = set()
        path = [root]

        for dep in root_spec.dependencies:
            self._visit(dep, path, visited, order)

        logger.debug(f"Resolved {root}: {order}")
        return order

    def _visit(self, pkg_name: str, path: List[str], visited: Set[str], order: List[str]):
        if pkg_name in path:
            cycle = path[path.index(pkg_name):] + [pkg_name]
            logger.error(f"Circular dependencies detected: {' -> '.join(cycle)}")
            raise DependencyCycleError(cycle)

        if pkg_name in visited:
            return

        spec = self._load(pkg_name)
        path.append(pkg_name)
        for dep in spec.dependencies:
            self._visit(dep, path, visited, order)
        path.pop()

        visited.add(pkg_name)
        order.append(pkg_name)

    def install_order(self, root: str) -> List[str]:
        """Dependencies followed by the root package itself"""
        return self.resolve(root) + [root]

    def missing(self, root: str, nest) -> List[str]:
        """Dependencies of root that are not installed yet, in install order"""
        return [pkg for pkg in self.resolve(root) if not nest.is_installed(pkg)]

    def build_graph(self, roots: Iterable[str]) -> nx.DiGraph:
        """Build a dependency graph (package -> dependency edges) for roots"""
        graph = nx.DiGraph()
        expanded: Set[str] = set()
        for root in roots:
            for pkg_name in self.resolve(root) + [root]:
                if pkg_name in expanded:
                    continue
                spec = self.repositories.get(pkg_name)
                graph.add_node(pkg_name, version=spec.version)
                for dep in spec.dependencies:
                    graph.add_edge(pkg_name, dep)
                expanded.add(pkg_name)
        return graph

    def dependency_tree(self, root: str) -> Dict[str, Any]:
        """Build a nested dependency tree structure for display"""
        graph = self.build_graph([root])
        return self._build_dependency_tree(root, graph, set())

    def _build_dependency_tree(self, pkg_name: str, graph: nx.DiGraph,
                               seen: Set[str]) -> Dict[str, Any]:
        node = {
            'name': pkg_name,
            'version': graph.nodes[pkg_name].get('version', ''),
            'dependencies': []
        }
        if pkg_name in seen:
            # Already expanded elsewhere in the tree
            node['repeated'] = True
            return node

        seen.add(pkg_name)
        for dep in graph.successors(pkg_name):
            node['dependencies'].append(self._build_dependency_tree(dep, graph, seen))
        return node
