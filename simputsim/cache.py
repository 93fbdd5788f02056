### Bounded storage for the data products derived from a source catalog.
## Every kind of product has its own store. Stores are filled up to their capacity and
## then replace their slots in round-robin order, independent of how recently a slot was used.

from simputsim.exceptions import CacheCapacityError


class CacheStore():
    '''
    A fixed-capacity store with get-or-load semantics.

    The lookup goes through a dictionary from the key to the slot index. Once all slots are
    occupied, the slot following the most recently inserted one is evicted (pure round-robin).

    Arguments:
        kind (str): name of the stored products, used in error messages
        capacity (int): maximum number of slots
        evict (bool, optional): if False, a full store raises CacheCapacityError instead of
            evicting a slot. Default is True.
        release (callable, optional): called with the evicted object. Default is None.
    '''
    def __init__(self, kind, capacity, evict=True, release=None):
        if capacity <= 0:
            raise ValueError(f"capacity of the {kind} storage must be positive")
        self.kind = kind
        self.capacity = capacity
        self.evict = evict
        self._release = release
        self._keys = []
        self._values = []
        self._index = {}
        self._cursor = -1

    def __len__(self):
        return len(self._values)

    def __contains__(self, key):
        return key in self._index

    def keys(self):
        """
        Return the keys of the occupied slots in slot order.
        """
        return list(self._keys)

    def peek(self, key):
        """
        Return the cached object for key without loading it, or None.
        """
        slot = self._index.get(key)
        if slot is None:
            return None
        return self._values[slot]

    def get(self, key, loader, is_valid=None):
        """
        Return the object stored for key, loading it on a miss.

        Args:
            key (hashable): resolved reference of the object
            loader (callable): builds the object, called without arguments on a miss
            is_valid (callable, optional): called with a cached object; if it returns False the
                hit is treated as a miss and the slot is refilled with a freshly loaded object.

        Returns:
            object: the cached or newly loaded object

        Raises:
            CacheCapacityError: if the store is full and does not evict.
            Exception: any error raised by loader propagates and leaves the store unchanged.
        """
        slot = self._index.get(key)
        if slot is not None:
            value = self._values[slot]
            if is_valid is None or is_valid(value):
                return value
            # Stale entry, refill the same slot.
            value = loader()
            self._replace(slot, value)
            return value

        if len(self._values) >= self.capacity and not self.evict:
            raise CacheCapacityError(self.kind, self.capacity)

        value = loader()
        self._insert(key, value)
        return value

    def _replace(self, slot, value):
        old = self._values[slot]
        self._values[slot] = value
        if self._release is not None and old is not value:
            self._release(old)

    def _insert(self, key, value):
        if len(self._values) < self.capacity:
            self._keys.append(key)
            self._values.append(value)
            self._cursor = len(self._values) - 1
        else:
            self._cursor += 1
            if self._cursor >= self.capacity:
                self._cursor = 0
            old_key = self._keys[self._cursor]
            del self._index[old_key]
            self._replace(self._cursor, value)
            self._keys[self._cursor] = key
        self._index[key] = self._cursor

    def clear(self):
        """
        Drop all cached objects.
        """
        if self._release is not None:
            for value in self._values:
                self._release(value)
        self._keys = []
        self._values = []
        self._index = {}
        self._cursor = -1


class SimputCache():
    '''
    All stores owned by one catalog/engine.

    Arguments:
        config (simputsim.inputs.Input): provides the capacities of the stores
    '''
    def __init__(self, config):
        capacities = config.cache_capacities
        self.sources = CacheStore('sources', capacities['max_sources'])
        self.midpspecs = CacheStore('mission-independent spectra', capacities['max_midpspecs'])
        self.specs = CacheStore('spectral distributions', capacities['max_specs'])
        self.lcs = CacheStore('light curves', capacities['max_lcs'])
        self.krlcs = CacheStore('Klein & Roberts light curves', capacities['max_krlcs'])
        self.imgs = CacheStore('images', capacities['max_imgs'], evict=False)
        self.psds = CacheStore('PSDs', capacities['max_psds'], evict=False)
        self.phlists = CacheStore('photon lists', capacities['max_phlists'], evict=False)

    def stores(self):
        return [self.sources, self.midpspecs, self.specs, self.lcs, self.krlcs,
                self.imgs, self.psds, self.phlists]

    def clear(self):
        for store in self.stores():
            store.clear()
