import math
import warnings
import numpy as np


class RandomSource():
    '''
    Holder of the uniform random number generator used by one engine.

    The generator is any callable without arguments returning floats uniformly
    distributed in [0,1). If none has been set when the first number is requested,
    a numpy generator is installed and a warning is issued.

    Arguments:
        rndgen (callable, optional): the generator. Default is None.
        seed (int, optional): seed of the fallback numpy generator. Default is None.
    '''
    def __init__(self, rndgen=None, seed=None):
        self._rndgen = rndgen
        self._seed = seed

    def set(self, rndgen):
        """
        Replace the generator.

        Args:
            rndgen (callable): returns floats in [0,1)
        """
        if not callable(rndgen):
            raise TypeError("the random number generator must be callable")
        self._rndgen = rndgen

    def uniform(self):
        """
        Return a random number in the interval [0,1).
        """
        if self._rndgen is None:
            warnings.warn("use numpy default_rng() as default since no random number generator is specified")
            self._rndgen = np.random.default_rng(self._seed).random
        return float(self._rndgen())

    def uniform_open(self):
        """
        Return a random number in the interval (0,1), redrawing exact zeros.
        """
        rnd = self.uniform()
        while rnd == 0.:
            rnd = self.uniform()
        return rnd

    def gauss_pair(self):
        """
        Return two independent standard normal numbers (Box-Muller method).
        """
        sqrt_2rho = math.sqrt(-2. * math.log(self.uniform_open()))
        phi = self.uniform() * 2. * math.pi
        return sqrt_2rho * math.cos(phi), sqrt_2rho * math.sin(phi)

    def exponential(self, avgdist):
        """
        Return an exponentially distributed number with the mean avgdist.
        """
        if avgdist <= 0.:
            raise ValueError(f"mean of the exponential distribution must be positive, got {avgdist}")
        return -math.log(self.uniform_open()) * avgdist
