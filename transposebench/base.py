"""
Base classes for benchmark tests.

This module provides the result container, the abstract benchmark interface and
the registry used to look up kernel variants by name.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Iterator, List, Optional, TypeVar
from datetime import datetime

from .backends.base import Device

T = TypeVar('T')


class BenchmarkResult:
    """
    Container for benchmark results.
    """
    def __init__(
        self,
        name: str,
        device_info: Dict[str, Any],
        parameters: Dict[str, Any],
        results: Dict[str, Any]
    ):
        """
        Initialize a benchmark result.

        Args:
            name: Name of the benchmark
            device_info: Information about the device used
            parameters: Parameters used for the benchmark
            results: Per-variant results, in execution order
        """
        self.name = name
        self.device_info = device_info
        self.parameters = parameters
        self.results = results
        self.timestamp = datetime.now().isoformat()

    @property
    def failed(self) -> List[str]:
        """Names of the variants whose output did not match the reference."""
        return [name for name, rec in self.results.items() if rec['status'] != 'passed']

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to a dictionary."""
        return {
            'name': self.name,
            'device_info': self.device_info,
            'parameters': self.parameters,
            'results': self.results,
            'timestamp': self.timestamp
        }


class BenchmarkTest(ABC):
    """
    Abstract base class for all benchmark tests.
    """
    def __init__(
        self,
        name: str,
        device: Device,
        verbose: bool = True
    ):
        """
        Initialize a benchmark test.

        Args:
            name: Name of the benchmark
            device: Device the kernels run on
            verbose: Whether to print progress information
        """
        self.name = name
        self.device = device
        self.verbose = verbose

    @abstractmethod
    def run(self, *args, **kwargs) -> BenchmarkResult:
        """
        Run the benchmark and return results.

        Returns:
            BenchmarkResult containing the benchmark results
        """
        pass

    @abstractmethod
    def plot(self, result: BenchmarkResult, *args, **kwargs) -> None:
        """
        Plot the benchmark results.

        Args:
            result: BenchmarkResult to plot
        """
        pass


class Registry(Generic[T]):
    """
    Ordered name -> entry registry.
    """
    def __init__(self, kind: str):
        """
        Initialize an empty registry.

        Args:
            kind: What the entries are, used in error messages
        """
        self.kind = kind
        self._entries: Dict[str, T] = {}

    def register(self, name: str, entry: T) -> T:
        if name in self._entries:
            raise ValueError(f"{self.kind} '{name}' is already registered")
        self._entries[name] = entry
        return entry

    def get(self, name: str) -> T:
        """
        Get an entry by name.

        Args:
            name: Name of the entry

        Returns:
            The registered entry
        """
        if name not in self._entries:
            raise ValueError(f"{self.kind} '{name}' not found. Available: {self.list()}")
        return self._entries[name]

    def list(self) -> List[str]:
        """List all registered names, in registration order."""
        return list(self._entries.keys())

    def __iter__(self) -> Iterator[T]:
        return iter(self._entries.values())

    def __contains__(self, name: str) -> bool:
        return name in self._entries
