"""Random seed management for deterministic input generation."""

import hashlib
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from typefuzz.utils.logger import get_logger

logger = get_logger(__name__)

Seed = Union[int, str]


@dataclass
class SeedState:
    """State information for a derived seed."""
    seed: int
    component: str
    operation: str
    timestamp: datetime = field(default_factory=datetime.now)


class RandomSeedManager:
    """Derives independent, reproducible PRNG streams from one master seed.

    Each fuzzing run owns its own manager, so no random state is shared
    between runs or with the global ``random`` module.
    """

    def __init__(self, master_seed: Optional[Seed] = None):
        """Initialize random seed manager.

        Args:
            master_seed: Master seed (int or str). If None, derived from the current time.
        """
        self._master_seed = master_seed if master_seed is not None else self._generate_master_seed()
        self._component_seeds: Dict[str, int] = {}
        self._seed_history: List[SeedState] = []
        self._random_instances: Dict[str, random.Random] = {}

        logger.debug(f"RandomSeedManager initialized with master seed: {self._master_seed!r}")

    def _generate_master_seed(self) -> int:
        """Generate a master seed based on current timestamp."""
        timestamp = datetime.now().timestamp()
        seed_bytes = hashlib.md5(str(timestamp).encode()).digest()
        return int.from_bytes(seed_bytes[:4], byteorder='big')

    def get_master_seed(self) -> Seed:
        """Get the master seed."""
        return self._master_seed

    def get_component_seed(self, component: str, operation: str = "default") -> int:
        """Get a deterministic seed for a specific component and operation.

        Args:
            component: Component name (e.g., 'argument')
            operation: Operation name (e.g., '0:a')

        Returns:
            Deterministic seed for the component/operation
        """
        key = f"{component}:{operation}"

        if key not in self._component_seeds:
            seed_input = f"{self._master_seed}:{component}:{operation}"
            seed_bytes = hashlib.md5(seed_input.encode()).digest()
            component_seed = int.from_bytes(seed_bytes[:8], byteorder='big')

            self._component_seeds[key] = component_seed
            self._seed_history.append(SeedState(
                seed=component_seed,
                component=component,
                operation=operation
            ))

            logger.debug(f"Generated seed {component_seed} for {key}")

        return self._component_seeds[key]

    def get_random_instance(self, component: str, operation: str = "default") -> random.Random:
        """Get a Random instance seeded for a specific component and operation.

        Repeated calls with the same key return the same (advancing) stream.
        """
        key = f"{component}:{operation}"

        if key not in self._random_instances:
            seed = self.get_component_seed(component, operation)
            self._random_instances[key] = random.Random(seed)

        return self._random_instances[key]

    def get_seed_history(self) -> List[SeedState]:
        """Get the history of all derived seeds."""
        return self._seed_history.copy()

    def export_state(self) -> Dict[str, Any]:
        """Export the seeds needed to reproduce a run."""
        return {
            'master_seed': self._master_seed,
            'component_seeds': self._component_seeds.copy(),
        }
