# src/alertledger/infrastructure/ledger_registry.py
"""
In-process home of the liquidity pools, one per trading system.

Commands against a pool must run inside `command(system, symbol)`: the symbol
lock orders commands on one distribution, the pool lock guards the shared
capital check and the distributions dict. Locks are always taken in that
order.
"""

import copy
import logging
import threading
from contextlib import contextmanager
from decimal import Decimal
from typing import Dict, Iterator, Mapping, Optional, Tuple

from alertledger.config import settings
from alertledger.domain.entities import LiquidityPool, TradingSystem
from alertledger.domain.value_objects import normalize_symbol, to_decimal

log = logging.getLogger(__name__)

_POOL_KEY = "*"


def default_liquidity() -> Dict[TradingSystem, Decimal]:
    return {
        TradingSystem.TRADER_CALL: settings.DEFAULT_TRADERCALL_LIQUIDITY,
        TradingSystem.SMART_MONEY: settings.DEFAULT_SMARTMONEY_LIQUIDITY,
    }


class LedgerRegistry:
    """Holds pools and their locks. Pools of different systems share nothing."""

    def __init__(self, initial_liquidity: Optional[Mapping[TradingSystem, Decimal]] = None):
        self._initial = dict(default_liquidity())
        if initial_liquidity:
            self._initial.update(initial_liquidity)
        self._pools: Dict[TradingSystem, LiquidityPool] = {}
        # one lock per (system, symbol) ever commanded, bounded by the traded
        # symbol universe; never evicted so waiters always share the same lock
        self._locks: Dict[Tuple[TradingSystem, str], threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, system: TradingSystem, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get((system, key))
            if lock is None:
                lock = self._locks[(system, key)] = threading.Lock()
            return lock

    def _pool(self, system: TradingSystem) -> LiquidityPool:
        with self._guard:
            pool = self._pools.get(system)
            if pool is None:
                amount = to_decimal(self._initial.get(system))
                pool = LiquidityPool(system=system, total_liquidity=amount, initial_liquidity=amount)
                self._pools[system] = pool
                log.info(f"Created liquidity pool {system.value} with {amount}.")
            return pool

    @contextmanager
    def command(self, system: TradingSystem, symbol: Optional[str] = None) -> Iterator[LiquidityPool]:
        """Yields the live pool while holding the symbol and pool locks."""
        system = TradingSystem.parse(system)
        symbol_lock = self._lock_for(system, normalize_symbol(symbol)) if symbol else None
        pool_lock = self._lock_for(system, _POOL_KEY)
        if symbol_lock is not None:
            symbol_lock.acquire()
        try:
            with pool_lock:
                yield self._pool(system)
        finally:
            if symbol_lock is not None:
                symbol_lock.release()

    def snapshot(self, system: TradingSystem) -> LiquidityPool:
        """A consistent deep copy for readers; never blocks on symbol locks."""
        system = TradingSystem.parse(system)
        with self._lock_for(system, _POOL_KEY):
            return copy.deepcopy(self._pool(system))
