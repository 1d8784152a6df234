'''
Interpolation of time-tagged vector tables.
Used to back tabulated rotational/translational ephemerides created from propagation results, and to define reference/dummy ephemerides in tests.

All interpolators map a sorted array of independent values (usually times) to rows of an array of dependent values.
Queries outside the table are handled according to a `BoundaryHandling` policy. The default (THROW) raises an `OutOfRangeError`.
'''
from abc import ABC, abstractmethod
from bisect import bisect
from enum import Enum

import numpy as np
from scipy.interpolate import CubicSpline

__all__ = [ "linInterp", "linInterpWeights", "OutOfRangeError", "BoundaryHandling", "OneDimensionalInterpolator", "LinearInterpolator",
    "LagrangeInterpolator", "CubicSplineInterpolator", "interpolatorFactory" ]

class OutOfRangeError(ValueError):
    ''' Raised when an interpolator is queried outside of its table, and its boundary handling policy is `BoundaryHandling.THROW` '''
    pass

class BoundaryHandling(Enum):
    THROW = 0
    EXTRAPOLATE = 1
    CLAMP = 2

def linInterp(X, Y, desiredX):
    '''
        Scalar linear interpolation in a sorted table, holding the end values outside of it.
        X and Y are sorted lists or arrays of equal length
    '''
    interpPt = bisect(X, desiredX)

    if interpPt >= len(X):
        return Y[len(X)-1]
    elif interpPt < 1:
        return Y[0]

    smX, lgX = X[interpPt-1], X[interpPt]
    smY, lgY = Y[interpPt-1], Y[interpPt]
    return smY + (desiredX - smX)*(lgY - smY)/(lgX - smX)

def linInterpWeights(X, desiredX):
    '''
        Expects the list X is sorted
        Returns smallYIndex, smallYWeight, largeYIndex, largeYWeight:
            Ex: X = [ 0, 1, 2, 3 ], desiredX = 0.75
                smallYIndex = 0
                smallYWeight = 0.25
                largeYIndex = 1
                largeYWeight = 0.75

            Then, to calculate the interpolate value:
                interpVal = Y[smallYIndex]*smallYWeight + Y[largeYIndex]*largeYWeight

        Outside the range of X, weights are linearly extrapolated from the first/last interval
    '''
    interpPt = bisect(X, desiredX)

    #Edge cases
    if interpPt >= len(X):
        interpPt = len(X) - 1
    elif interpPt < 1:
        interpPt = 1

    # Normal cases
    smallYIndex = interpPt -1
    largeYIndex = interpPt
    largeYWeight = (desiredX - X[smallYIndex]) / (X[largeYIndex] - X[smallYIndex])
    smallYWeight = 1 - largeYWeight

    return smallYIndex, smallYWeight, largeYIndex, largeYWeight

class OneDimensionalInterpolator(ABC):
    ''' Interface for all interpolators. Subclasses implement `_evaluate` and `_evaluateDerivative` for in-range (or extrapolated) queries '''

    def __init__(self, independentValues, dependentValues, boundaryHandling=BoundaryHandling.THROW):
        '''
            Inputs:
                independentValues:  (array-like, length N) strictly increasing
                dependentValues:    (array-like, N or Nxm) one row per independent value
                boundaryHandling:   (`BoundaryHandling`)
        '''
        self.independentValues = np.asarray(independentValues, dtype=np.float64)
        self.dependentValues = np.asarray(dependentValues, dtype=np.float64)
        self.boundaryHandling = boundaryHandling

        if self.independentValues.ndim != 1:
            raise ValueError("Independent values must be one-dimensional")
        if len(self.independentValues) != len(self.dependentValues):
            raise ValueError("Number of independent values ({}) and dependent values ({}) must match".format(len(self.independentValues), len(self.dependentValues)))
        if len(self.independentValues) < 2:
            raise ValueError("At least two data points are required for interpolation")
        if np.any(np.diff(self.independentValues) <= 0):
            raise ValueError("Independent values must be strictly increasing")

        self.lowerBound = self.independentValues[0]
        self.upperBound = self.independentValues[-1]

    def __call__(self, x):
        x, outOfRange = self._handleBounds(x)
        return self._evaluate(x)

    def derivative(self, x):
        ''' Returns the derivative of the interpolant with respect to the independent variable '''
        x, outOfRange = self._handleBounds(x)
        if outOfRange and self.boundaryHandling == BoundaryHandling.CLAMP:
            return np.zeros_like(self.dependentValues[0])
        return self._evaluateDerivative(x)

    def _handleBounds(self, x):
        ''' Returns the (possibly clamped) query point and whether the original query point was outside the table '''
        if self.lowerBound <= x <= self.upperBound:
            return x, False

        if self.boundaryHandling == BoundaryHandling.THROW:
            raise OutOfRangeError("Interpolation point {} is outside of the tabulated range [{}, {}]".format(x, self.lowerBound, self.upperBound))
        elif self.boundaryHandling == BoundaryHandling.CLAMP:
            return min(max(x, self.lowerBound), self.upperBound), True
        else:
            return x, True

    def _getIntervalIndex(self, x) -> int:
        ''' Index i of the interval [ X[i], X[i+1] ) containing x, limited to the first/last intervals '''
        i = bisect(self.independentValues, x) - 1
        return min(max(i, 0), len(self.independentValues) - 2)

    @abstractmethod
    def _evaluate(self, x):
        pass

    @abstractmethod
    def _evaluateDerivative(self, x):
        pass

class LinearInterpolator(OneDimensionalInterpolator):
    def _evaluate(self, x):
        smallYIndex, smallYWeight, largeYIndex, largeYWeight = linInterpWeights(self.independentValues, x)
        return self.dependentValues[smallYIndex]*smallYWeight + self.dependentValues[largeYIndex]*largeYWeight

    def _evaluateDerivative(self, x):
        i = self._getIntervalIndex(x)
        X = self.independentValues
        return (self.dependentValues[i+1] - self.dependentValues[i]) / (X[i+1] - X[i])

class LagrangeInterpolator(OneDimensionalInterpolator):
    '''
        Piecewise Lagrange polynomial interpolation.
        For a query in the interval [ X[i], X[i+1] ), the polynomial through `order` consecutive points centered on that interval is evaluated
            (order=8 -> 7th degree polynomials). Near the ends of the table, the stencil is shifted inwards.
        Derivatives are the exact derivatives of the local polynomial.
    '''
    def __init__(self, independentValues, dependentValues, boundaryHandling=BoundaryHandling.THROW, order=8):
        super().__init__(independentValues, dependentValues, boundaryHandling)
        if order < 2:
            raise ValueError("Lagrange interpolation order must be >= 2, got: {}".format(order))
        self.order = min(order, len(self.independentValues))

    def _getStencilStart(self, x) -> int:
        i = self._getIntervalIndex(x)
        start = i - self.order//2 + 1
        return min(max(start, 0), len(self.independentValues) - self.order)

    def _evaluate(self, x):
        start = self._getStencilStart(x)
        nodes = self.independentValues[start:start+self.order]
        weights = _lagrangeWeights(nodes, x)
        return weights @ self.dependentValues[start:start+self.order]

    def _evaluateDerivative(self, x):
        start = self._getStencilStart(x)
        nodes = self.independentValues[start:start+self.order]
        weights = _lagrangeDerivativeWeights(nodes, x)
        return weights @ self.dependentValues[start:start+self.order]

def _lagrangeDenominators(nodes):
    nodeDifferences = nodes[:, None] - nodes[None, :]
    np.fill_diagonal(nodeDifferences, 1.0)
    return nodeDifferences.prod(axis=1)

def _lagrangeWeights(nodes, x):
    ''' L_j(x) = prod_{k!=j} (x - t_k) / prod_{k!=j} (t_j - t_k) '''
    m = len(nodes)
    distances = np.tile(x - nodes, (m, 1))
    np.fill_diagonal(distances, 1.0)
    return distances.prod(axis=1) / _lagrangeDenominators(nodes)

def _lagrangeDerivativeWeights(nodes, x):
    ''' dL_j/dx = sum_{i!=j} prod_{k!=j,i} (x - t_k) / prod_{k!=j} (t_j - t_k). Valid at the nodes themselves '''
    m = len(nodes)
    distances = np.tile(x - nodes, (m, m, 1))
    indices = np.arange(m)
    distances[indices, :, indices] = 1.0 # Exclude k == j
    distances[:, indices, indices] = 1.0 # Exclude k == i
    products = distances.prod(axis=2)
    np.fill_diagonal(products, 0.0) # Exclude i == j
    return products.sum(axis=1) / _lagrangeDenominators(nodes)

class CubicSplineInterpolator(OneDimensionalInterpolator):
    ''' Natural cubic spline (scipy.interpolate.CubicSpline) through all points '''
    def __init__(self, independentValues, dependentValues, boundaryHandling=BoundaryHandling.THROW):
        super().__init__(independentValues, dependentValues, boundaryHandling)
        self.spline = CubicSpline(self.independentValues, self.dependentValues, axis=0, bc_type='natural', extrapolate=True)

    def _evaluate(self, x):
        return self.spline(x)

    def _evaluateDerivative(self, x):
        return self.spline(x, 1)

def interpolatorFactory(interpolatorType, independentValues, dependentValues, boundaryHandling=BoundaryHandling.THROW, order=8) -> OneDimensionalInterpolator:
    '''
        interpolatorType: 'Linear', 'Lagrange' or 'CubicSpline'
        boundaryHandling: `BoundaryHandling` or its name as a string ('Throw', 'Extrapolate', 'Clamp')
        order: Number of points in each Lagrange interpolation stencil
    '''
    if isinstance(boundaryHandling, str):
        try:
            boundaryHandling = BoundaryHandling[boundaryHandling.upper()]
        except KeyError:
            raise ValueError("Boundary handling: {} not found. Try 'Throw', 'Extrapolate' or 'Clamp'".format(boundaryHandling))

    if interpolatorType == "Linear":
        return LinearInterpolator(independentValues, dependentValues, boundaryHandling)
    elif interpolatorType == "Lagrange":
        return LagrangeInterpolator(independentValues, dependentValues, boundaryHandling, order=order)
    elif interpolatorType == "CubicSpline":
        return CubicSplineInterpolator(independentValues, dependentValues, boundaryHandling)
    else:
        raise ValueError("Interpolator type: {} not implemented. Try 'Linear', 'Lagrange' or 'CubicSpline'".format(interpolatorType))
