'''
    Runge-Kutta integrators with constant or adaptive time steps.
    `SPINDLE.SimulationRunners.DynamicsSimulator` uses them to advance concatenated translational/rotational state vectors (numpy arrays).
    Integrators are callables: `integrator(state, time, derivativeFunction, dt) -> IntegrationResult`.

    Methods are defined by Butcher tableaus, stored as lists of rows with the leading zero row left out.
        RK4 - 3/8 rule (https://en.wikipedia.org/wiki/List_of_Runge%E2%80%93Kutta_methods#3/8-rule_fourth-order_method):
            [
                [ 1/3, 1/3 ],                   # Stage rows: c_i, then a_i1 ... a_i(i-1)
                [ 2/3, -1/3, 1.0 ],
                [ 1.0, 1.0, -1.0, 1.0 ],
                [ 1/8, 3/8, 3/8, 1/8 ]          # Weight row: b_1 ... b_s
            ]

        Embedded (adaptive) methods end with two weight rows: higher order first, then lower order.
            Their difference is the local error estimate used to adapt the time step.
'''
import math
from abc import ABC, abstractmethod
from typing import Callable

import numpy as np

__all__ = [ "integratorFactory", "IntegratorSettings", "IntegrationResult", "ClassicalIntegrator", "AdaptiveIntegrator" ]

def checkButcherTableau(tableau):
    ''' Raises ValueError unless every stage row has c_i = sum(a_ij) and every weight row sums to 1 '''
    previousRowLength = 0
    for rowIndex, row in enumerate(tableau):
        if len(row) == previousRowLength:
            # Weight rows have the same length as the last stage row
            weightSum = sum(row)
            if not math.isclose(weightSum, 1.0):
                raise ValueError("Weights in butcher tableau row {} sum to {}, expected 1".format(rowIndex, weightSum))
        else:
            c = row[0]
            aSum = sum(row[1:])
            if not math.isclose(c, aSum, abs_tol=1e-15):
                raise ValueError("Butcher tableau row {}: a coefficients sum to {}, but c = {}".format(rowIndex, aSum, c))
            previousRowLength = len(row)


class IntegratorSettings():
    '''
        Plain container for everything needed to build an integrator, plus the initial time step.
        Time step adaptation parameters are ignored by constant time step methods.
    '''
    def __init__(self, method="RK45Adaptive", initialTimeStep=1.0, minTimeStep=1e-6, maxTimeStep=float('inf'), relativeTolerance=1e-10,
            absoluteTolerance=1e-10, safetyFactor=0.8, minFactor=0.1, maxFactor=4.0, controller="elementary"):
        self.method = method
        self.initialTimeStep = initialTimeStep
        self.minTimeStep = minTimeStep
        self.maxTimeStep = maxTimeStep
        self.relativeTolerance = relativeTolerance
        self.absoluteTolerance = absoluteTolerance
        self.safetyFactor = safetyFactor
        self.minFactor = minFactor
        self.maxFactor = maxFactor
        self.controller = controller

    @classmethod
    def fromSimDefinition(cls, simDefinition):
        ''' Reads SimControl.timeDiscretization, SimControl.timeStep and SimControl.TimeStepAdaptation.* '''
        from SPINDLE.IO import SubDictReader
        simControlReader = SubDictReader("SimControl", simDefinition)
        adaptDictReader = SubDictReader("SimControl.TimeStepAdaptation", simDefinition)

        return cls(
            method=simControlReader.getString("timeDiscretization"),
            initialTimeStep=simControlReader.getFloat("timeStep"),
            minTimeStep=adaptDictReader.getFloat("minTimeStep"),
            maxTimeStep=adaptDictReader.getFloat("maxTimeStep"),
            relativeTolerance=adaptDictReader.getFloat("relativeTolerance"),
            absoluteTolerance=adaptDictReader.getFloat("absoluteTolerance"),
            safetyFactor=adaptDictReader.getFloat("Elementary.safetyFactor"),
            minFactor=adaptDictReader.getFloat("minFactor"),
            maxFactor=adaptDictReader.getFloat("maxFactor"),
            controller=adaptDictReader.getString("controller")
        )

    def createIntegrator(self, discardedTimeStepCallback=None):
        return integratorFactory(self.method, integratorSettings=self, discardedTimeStepCallback=discardedTimeStepCallback)

def integratorFactory(integrationMethod="Euler", simDefinition=None, integratorSettings=None, discardedTimeStepCallback=None):
    '''
        Returns a callable integrator object

        Inputs:
            * integrationMethod: (str) Name of integration method: Examples = "Euler", "RK4", "RK45Adaptive", and "RK78Adaptive"
            * simDefinition: (`SPINDLE.IO.SimDefinition`) for adaptive integration, provide either a simdefinition file with time step adaptation parameters
            * integratorSettings: (`IntegratorSettings`) or settings object with the same parameters
            * discardedTimeStepCallback: (1-argument function reference) for adaptive integration, this function (if provided) is called when a time step is computed,
                but then discarded and re-computed with a smaller timestep to remain below the error tolerance.
    '''
    if "Adapt" in integrationMethod:
        if integratorSettings is None:
            if simDefinition is None:
                raise ValueError("SimDefinition or IntegratorSettings object required to initialize adaptive integrator")
            integratorSettings = IntegratorSettings.fromSimDefinition(simDefinition)

        return AdaptiveIntegrator(
            method=integrationMethod,
            controller=integratorSettings.controller,
            relativeTolerance=integratorSettings.relativeTolerance,
            absoluteTolerance=integratorSettings.absoluteTolerance,
            maxMinSafetyFactors=[ integratorSettings.maxFactor, integratorSettings.minFactor, integratorSettings.safetyFactor ],
            maxTimeStep=integratorSettings.maxTimeStep,
            minTimeStep=integratorSettings.minTimeStep,
            discardedTimeStepCallback=discardedTimeStepCallback
        )

    else:
        # Constant time step integrator
        return ClassicalIntegrator(method=integrationMethod)


class Integrator(ABC):
    @abstractmethod
    def __call__(self, initVal, initTime:float, derivativeFunc:Callable, dt:float):
        '''
            Advances initVal from initTime by (at most) dt.

            Inputs:
                initVal:        state at initTime, supporting + and * by a float (numpy arrays in SPINDLE)
                derivativeFunc: f(time, state) -> d(state)/dt, ex. `SPINDLE.SimulationRunners.DynamicsSimulator.computeStateDerivative`

            Returns an `IntegrationResult`. Adaptive integrators may return a smaller dt than requested.
        '''
        pass

class IntegrationResult():
    __slots__ = [ 'newValue', 'timeStepAdaptationFactor', 'errorMagEstimate', 'dt', 'derivativeEstimate' ]

    def __init__(self, newValue, dt, derivativeEstimate, timeStepAdaptationFactor=1.0, errorMagEstimate=0.0):
        '''
            newValue:                   Value of quantity represented by initVal at time initTime+dt
            dt:                         The size of the time step actually taken (error-limited adaptive integrators can override to shrink the time step)
            derivativeEstimate:         Estimate of the value of the function derivative obtained by the integrator over the last time step
            timeStepAdaptationFactor:   For adaptive methods, suggest time step adaption (otherwise 1)
            errorMagEstimate:           For adaptive methods, ratio of the estimated error to the allowed error (otherwise 0)
        '''
        self.newValue = newValue
        self.dt = dt
        self.derivativeEstimate = derivativeEstimate
        self.timeStepAdaptationFactor = timeStepAdaptationFactor
        self.errorMagEstimate = errorMagEstimate

class ClassicalIntegrator(Integrator):
    ''' Callable class for constant-dt ODE integration '''

    def __init__(self, method="Euler"):
        # Save integration method and associated Butcher tableau
        self.method = method
        self.tableau = None

        if method == "Euler":
            self.integrate = self._integrateEuler
        elif method == "RK2Midpoint":
            self.integrate = self._integrateByButcherTableau
            self.tableau = [
                [0.5, 0.5],
                [0,   1  ]
            ]
        elif method == "RK2Heun":
            self.integrate = self._integrateByButcherTableau
            self.tableau = [
                [1, 1],
                [0.5, 0.5]
            ]
        elif method == "RK4":
            self.integrate = self._integrateByButcherTableau
            self.tableau = [
                [ 0.5, 0.5 ],
                [ 0.5, 0, 0.5 ],
                [ 1, 0, 0, 1 ],
                [ 1/6, 1/3, 1/3, 1/6 ]
            ]
        elif method == "RK4_3/8":
            self.integrate = self._integrateByButcherTableau
            self.tableau = [
                [ 1/3, 1/3 ],
                [ 2/3, -1/3, 1.0 ],
                [ 1.0, 1.0, -1.0, 1.0 ],
                [ 1/8, 3/8, 3/8, 1/8 ]
            ]
        else:
            raise ValueError("Integration method: {} not implemented. Try 'Euler', 'RK2Midpoint', 'RK2Heun', 'RK4', 'RK4_3/8', or one of the adaptive methods".format(method))

        # If a butcher tableau is used to define the R-K method, check that it is valid
        if self.tableau is not None:
            checkButcherTableau(self.tableau)

    def __call__(self, initVal, initTime, derivativeFunc, dt):
        return self.integrate(initVal, initTime, derivativeFunc, dt)

    #### Constant time step methods ####
    def _integrateEuler(self, initVal, initTime, derivativeFunc, dt):
        yPrime = derivativeFunc(initTime, initVal)
        return IntegrationResult(initVal + yPrime*dt, dt, yPrime)

    def _integrateByButcherTableau(self, initVal, initTime, derivativeFunc, dt):
        '''
            Integrates a function based on a Butcher tableau defined in self.tableau
            Format expected is:
            [
                [ c2, a21 ],
                [ c3, a31, a32 ],
                ...
                [ b1, b2, ... ]

            Then for row i of the tableau, ki = derivativefunc(t + ci*dt, y + dt(ai1*k1 + ai2*k2 + ...))
            Then final result is y + dt*(b1*k1 + b2*k2 + ...)
            Further explanation: https://en.wikipedia.org/wiki/Runge%E2%80%93Kutta_methods#Use
        '''
        tab = self.tableau

        # Initialize array of derivatives (k's) with first k-value from beginning of interval
        k = [ derivativeFunc(initTime, initVal) ]
        # Calculate all other k's - one for each row of the tableau except the last one
        for i in range(len(tab) - 1):
            evalTime = initTime + dt*tab[i][0]
            evalY = initVal + _weightedSum(k, tab[i][1:])*dt
            k.append(derivativeFunc(evalTime, evalY))

        # Calculate final result using last row of coefficients
        derivative = _weightedSum(k, tab[-1])

        return IntegrationResult((initVal + derivative*dt), dt, derivative)

def _weightedSum(k, coefficients):
    ''' sum(coefficients[i]*k[i]), skipping zero coefficients. Starts from the first term, because k could be a non-scalar type '''
    result = k[0]*coefficients[0]
    for i in range(1, len(coefficients)):
        if coefficients[i] != 0:
            result = result + k[i]*coefficients[i]
    return result

class AdaptiveIntegrator(Integrator):
    ''' Callable class for error-limited adaptive-dt ODE integration '''

    def __init__(self, method="RK45Adaptive", controller="elementary", relativeTolerance=1e-10, absoluteTolerance=1e-10, maxMinSafetyFactors=[4.0, 0.1, 0.8],
            maxTimeStep=5, minTimeStep=0.0001, discardedTimeStepCallback=None):
        '''
            Error control: a step is accepted if max_i( |fine_i - coarse_i| / (absoluteTolerance + relativeTolerance*|y_i|) ) <= 1
                where y_i is the larger of the initial and final magnitudes of component i

            discardedTimeStepCallback: (function) will be called with (self) when a computed time step is discarded and recomputed
        '''
        # Save integration method and associated
        self.method = method
        self.tableau = None

        self.derivativeCache = None # For some adaptive methods, the last derivative of the previous integration step is the same as the first of the following step. This field caches it
        if method == "RK12Adaptive": # Just a test method
            self.tableau = [
                [ 0.5, 0.5 ],
                [ 0.0, 1.0 ],
                [ 1.0, 0.0 ]
            ]
            self.firstSameAsLast = False
            self.lowerOrder = 1
        elif method == "RK23Adaptive": # Bogacki-Shampine method
            self.tableau = [
                [ 0.5, 0.5 ],
                [ 3/4, 0.0, 3/4 ],
                [ 1.0, 2/9, 1/3, 4/9 ],
                [ 2/9, 1/3, 4/9, 0.0 ],
                [ 7/24, 1/4, 1/3, 1/8 ]
            ]
            self.firstSameAsLast = True
            self.lowerOrder = 2
        elif method == "RK45Adaptive": # Dormand-Prince RK5(4)7FM method
            self.tableau = [
                [ 1/5, 1/5 ],
                [ 3/10, 3/40, 9/40 ],
                [ 4/5, 44/45, -56/15, 32/9 ],
                [ 8/9, 19372/6561, -25360/2187, 64448/6561, -212/729 ],
                [ 1.0, 9017/3168, -355/33, 46732/5247, 49/176, -5103/18656 ],
                [ 1.0, 35/384, 0.0, 500/1113, 125/192, -2187/6784, 11/84 ],
                [ 35/384, 0.0, 500/1113, 125/192, -2187/6784, 11/84, 0.0 ], # 5th order
                [ 5179/57600, 0.0, 7571/16695, 393/640, -92097/339200, 187/2100, 1/40 ] # 4th order
            ]
            self.firstSameAsLast = True
            self.lowerOrder = 4
        elif method == "RK78Adaptive": # Dormand-Prince RK8(7)13M method (rational approximation)
            self.tableau = [
                [ 1/18, 1/18 ],
                [ 1/12, 1/48, 1/16 ],
                [ 1/8, 1/32, 0, 3/32 ],
                [ 5/16, 5/16, 0, -75/64, 75/64 ],
                [ 3/8, 3/80, 0, 0, 3/16, 3/20 ],
                [ 59/400, 29443841/614563906, 0, 0, 77736538/692538347, -28693883/1125000000, 23124283/1800000000 ],
                [ 93/200, 16016141/946692911, 0, 0, 61564180/158732637, 22789713/633445777, 545815736/2771057229, -180193667/1043307555 ],
                [ 5490023248/9719169821, 39632708/573591083, 0, 0, -433636366/683701615, -421739975/2616292301, 100302831/723423059, 790204164/839813087, 800635310/3783071287 ],
                [ 13/20, 246121993/1340847787, 0, 0, -37695042795/15268766246, -309121744/1061227803, -12992083/490766935, 6005943493/2108947869, 393006217/1396673457, 123872331/1001029789 ],
                [ 1201146811/1299019798, -1028468189/846180014, 0, 0, 8478235783/508512852, 1311729495/1432422823, -10304129995/1701304382, -48777925059/3047939560, 15336726248/1032824649, -45442868181/3398467696, 3065993473/597172653 ],
                [ 1, 185892177/718116043, 0, 0, -3185094517/667107341, -477755414/1098053517, -703635378/230739211, 5731566787/1027545527, 5232866602/850066563, -4093664535/808688257, 3962137247/1805957418, 65686358/487910083 ],
                [ 1, 403863854/491063109, 0, 0, -5068492393/434740067, -411421997/543043805, 652783627/914296604, 11173962825/925320556, -13158990841/6184727034, 3936647629/1978049680, -160528059/685178525, 248638103/1413531060, 0 ],
                [ 14005451/335480064, 0, 0, 0, 0, -59238493/1068277825, 181606767/758867731,   561292985/797845732,   -1041891430/1371343529,  760417239/1151165299, 118820643/751138087, -528747749/2220607170,  1/4], # 8th order
                [ 13451932/455176623, 0, 0, 0, 0, -808719846/976000145, 1757004468/5645159321, 656045339/265891186,   -3867574721/1518517206,   465885868/322736535,  53011238/667516719,                  2/45,    0] # 7th order
            ]
            self.firstSameAsLast = False
            self.lowerOrder = 7
        else:
            raise ValueError("Integration method: {} not implemented. Try 'RK12Adaptive', 'RK23Adaptive', 'RK45Adaptive' or 'RK78Adaptive'".format(method))

        checkButcherTableau(self.tableau)

        # Save limiter info and tolerances, required for any adaptation scheme
        self.maxFactor, self.minFactor, self.safetyFactor = maxMinSafetyFactors
        self.relativeTolerance = relativeTolerance
        self.absoluteTolerance = absoluteTolerance
        self.maxTimeStep = maxTimeStep
        self.minTimeStep = minTimeStep
        self.discardedTimeStepCallback = discardedTimeStepCallback

        ### Set up the chosen adaptation method ###
        if controller == "elementary":
            # Adjust time step size using an elementary controller
            self.getTimeStepAdjustmentFactor = self._getTimeStepAdjustmentFactor_Elementary

        elif controller == "Constant":
            # Do not adjust the time step
            self.getTimeStepAdjustmentFactor = self._getTimeStepAdjustmentFactor_Constant

        else:
            raise ValueError("Adaptive Integrator requires a step size controller: 'elementary' or 'Constant'. Got: {}".format(controller))

    def __call__(self, initVal, initTime, derivativeFunc, dt):
        dt = min(dt, self.maxTimeStep)
        firstDerivative = self._getCachedFirstDerivative(initVal, initTime)

        while True:
            result, derivative, errorMagEstimate, lastDerivativeEvaluation = self._integrate(initVal, initTime, derivativeFunc, dt, firstDerivative)

            # Compute adaptation factor
            desiredAdaptFactor = self.getTimeStepAdjustmentFactor(errorMagEstimate, dt)
            limitedAdaptFactor = self._limitAdaptationFactor(desiredAdaptFactor, dt)

            if errorMagEstimate <= 1.0 or dt <= self.minTimeStep or self.getTimeStepAdjustmentFactor == self._getTimeStepAdjustmentFactor_Constant:
                break

            # Discard the time step, recompute with a smaller one
            if self.discardedTimeStepCallback is not None:
                self.discardedTimeStepCallback(self)

            dt = max(self.minTimeStep, dt*min(limitedAdaptFactor, 0.9))

        if self.firstSameAsLast:
            self.derivativeCache = (initTime + dt, result, lastDerivativeEvaluation)

        return IntegrationResult(result, dt, derivative, limitedAdaptFactor, errorMagEstimate)

    def _getCachedFirstDerivative(self, initVal, initTime):
        ''' The cached derivative is only reused if the integration continues from exactly where the last step ended '''
        if self.derivativeCache is None:
            return None

        cachedTime, cachedValue, cachedDerivative = self.derivativeCache
        if cachedTime == initTime and np.array_equal(cachedValue, initVal):
            return cachedDerivative
        return None

    #### Time Step adjustment ####
    def _limitAdaptationFactor(self, desiredAdaptFactor, dt):
        '''
            Apply adaptation limiters
            Adaptation can be limited in two ways: by self.maxFactor/self.minFactor and by self.minTimeStep/self.maxTimeStep.
            The below checks which limitation is currently most restrictive and applies that one
        '''
        # Calculate min/max adaptation factors based on min/max time step size restrictions
        minFactor2 = self.minTimeStep / dt
        maxFactor2 = self.maxTimeStep / dt

        # Calculate resulting total min/max factors
        minFactor = max(minFactor2, self.minFactor)
        maxFactor = min(maxFactor2, self.maxFactor)

        # Apply limits
        return min(max(desiredAdaptFactor, minFactor), maxFactor)

    def _getTimeStepAdjustmentFactor_Constant(self, errorMag, dt):
        ''' Don't adjust the time step (always 1.0) '''
        return 1

    def _getTimeStepAdjustmentFactor_Elementary(self, errorMag, dt):
        ''' Calculates the time step adjustment factor when using an elementary controller '''
        if errorMag == 0:
            return self.maxFactor
        return self.safetyFactor * (1/errorMag)**(1/(self.lowerOrder + 1))

    #### Adaptive Integration Method ####
    def _integrate(self, initVal, initTime, derivativeFunc, dt, firstSameAsLast=None):
        '''
            Integrates a function based on a Butcher tableau defined in self.tableau
            Format expected is:
            [
                [ c2, a21 ],
                [ c3, a31, a32 ],
                ...
                [ b1, b2, ... ]
                [ b1*, b2*, ... ]

            Then for row i of the tableau, ki = derivativefunc(t + ci*dt, y + dt(ai1*k1 + ai2*k2 + ...))
            Then final result is y + dt*(b1*k1 + b2*k2 + ...)
            For these adaptive methods, two rows of b's (b's and b*'s) produce two estimates of the solution
            Subtracting these gives an error estimate which can be used to adjust the time step size
            Also see comment at the top of this file
            Further explanation: https://en.wikipedia.org/wiki/Runge%E2%80%93Kutta_methods#Use
        '''
        tab = self.tableau

        # Initialize array of derivatives (k's) with first k-value from beginning of interval
        if firstSameAsLast is not None:
            # Use first same as last property if possible to save a function evaluation
            k = [ firstSameAsLast ]
        else:
            k = [ derivativeFunc(initTime, initVal) ]

        # Calculate all other k's - one for each row of the tableau except the last two
        for i in range(len(tab) - 2):
            evalTime = initTime + dt*tab[i][0]
            evalY = initVal + _weightedSum(k, tab[i][1:])*dt
            k.append(derivativeFunc(evalTime, evalY))

        lastDerivativeEvaluation = k[-1]

        # Calculate final high/low accuracy results
        fineDerivative = _weightedSum(k, tab[-2])
        coarseDerivative = _weightedSum(k, tab[-1])

        # Compute error estimate, relative to the allowed error
        finePred = initVal + fineDerivative*dt
        errorEstimate = (fineDerivative - coarseDerivative)*dt
        allowedError = self.absoluteTolerance + self.relativeTolerance*np.maximum(np.abs(initVal), np.abs(finePred))
        errorMagEstimate = float(np.max(np.abs(errorEstimate) / allowedError))

        return finePred, fineDerivative, errorMagEstimate, lastDerivativeEvaluation
