import types

__all__ = ['Input']


class Input():
    """
    A class that holds the configuration of a photon generation engine.

    Input can be created without arguments (default values will be used), with individual arguments or with a
    dictionary of cache capacities.

    Attribute Access:
        - All attributes are made read-only after initialization.
        - Accessing an attribute (e.g., `input.psd_length`) will retrieve the corresponding
          internal value (e.g., `_psd_length`).
        - Cache capacities are available both individually (e.g., `input.max_lcs`) and as the
          read-only mapping `input.cache_capacities`.

    Raises:
        AttributeError: If an attempt is made to modify any attribute after initialization.
        ValueError: If a capacity is not a positive integer or psd_length is not a power of two.

    """

    def __init__(self, **kwargs):
        #Defaults dictionaries

        # Maximum number of entries of each internal storage.
        cache_capacities_default = {'max_sources' : 1000000,    # source records loaded from the catalog
                                    'max_midpspecs' : 200,      # mission-independent spectra
                                    'max_specs' : 30000,        # spectral distributions convolved with the ARF
                                    'max_lcs' : 1000,           # light curves (files and PSD realizations)
                                    'max_krlcs' : 10,           # Klein & Roberts light curves
                                    'max_imgs' : 200,           # source images (no eviction)
                                    'max_psds' : 200,           # power spectral densities (no eviction)
                                    'max_phlists' : 200}        # photon lists (no eviction)

        engine_keywords_default = {'psd_length' : 2**16,        # number of frequency bins for the Timmer & Koenig FFT
                                   'seed' : None,               # seed of the default random number generator
                                   'verbose' : False}           # print status messages

        self.__mutable_cache_capacities = cache_capacities_default.copy()

        if 'cache_capacities' in kwargs:
            unknown = set(kwargs['cache_capacities']) - set(cache_capacities_default)
            if unknown:
                raise KeyError(f"ERROR: Unknown cache capacities: {unknown}")
            self.__mutable_cache_capacities.update(kwargs['cache_capacities'])
            del kwargs['cache_capacities']

        # Individual capacities override the dictionary
        for key in list(kwargs):
            if key in cache_capacities_default:
                self.__mutable_cache_capacities[key] = kwargs.pop(key)

        unknown = set(kwargs) - set(engine_keywords_default)
        if unknown:
            raise KeyError(f"ERROR: Unknown keywords: {unknown}")
        engine_keywords = engine_keywords_default.copy()
        engine_keywords.update(kwargs)

        for key, val in self.__mutable_cache_capacities.items():
            if isinstance(val, bool) or int(val) != val or val <= 0:
                raise ValueError(f"Cache capacity '{key}' must be a positive integer, got {val}")
            self.__mutable_cache_capacities[key] = int(val)

        psd_length = engine_keywords['psd_length']
        if int(psd_length) != psd_length or psd_length < 2 or (int(psd_length) & (int(psd_length) - 1)) != 0:
            raise ValueError(f"psd_length must be a power of two, got {psd_length}")
        engine_keywords['psd_length'] = int(psd_length)

        # To make attributes 'read-only'
        vars(self).update({'_' + key: val for key, val in self.__mutable_cache_capacities.items()})
        vars(self).update({'_' + key: val for key, val in engine_keywords.items()})

        # Immutable view of the capacities
        self._cache_capacities = types.MappingProxyType(self.__mutable_cache_capacities)

        self._initialized = True

    #Make all attributes read-only
    def __setattr__(self, attr, value):
        if '_initialized' not in self.__dict__: #If not initialized,
            super().__setattr__(attr, value)
        else :
            raise AttributeError(f'Cannot set attribute {attr}')

    def __getattr__(self, attr):
        name ='_'+attr
        if name in  self.__dict__ :
            return self.__dict__[name]
        raise AttributeError(attr)
