'''
Aerodynamic coefficient models: convert dynamic pressure and aerodynamic angles into forces (aerodynamic frame) and moments (body frame)
'''
import numpy as np

__all__ = [ "AerodynamicCoefficients", "aerodynamicCoefficientsFactory", "getDynamicPressure" ]

def getDynamicPressure(density, airspeed) -> float:
    return 0.5 * density * airspeed*airspeed

class AerodynamicCoefficients():
    '''
        Constant force coefficients and moment coefficients linear in angle of attack and sideslip:
            force (aerodynamic frame) = -q*S*[ CD, CS, CL ]
            moment (body frame, about the CG) = q*S*c*[ Cl, Cm, Cn ]
                with [ Cl, Cm, Cn ] = momentCoefficients + alphaDerivatives*angleOfAttack + betaDerivatives*sideslipAngle
    '''
    def __init__(self, referenceArea, referenceLength, forceCoefficients, momentCoefficients=(0,0,0), momentCoefficientAlphaDerivatives=(0,0,0),
            momentCoefficientBetaDerivatives=(0,0,0)):
        self.referenceArea = referenceArea
        self.referenceLength = referenceLength
        self.forceCoefficients = np.array(forceCoefficients, dtype=np.float64)
        self.momentCoefficients = np.array(momentCoefficients, dtype=np.float64)
        self.momentCoefficientAlphaDerivatives = np.array(momentCoefficientAlphaDerivatives, dtype=np.float64)
        self.momentCoefficientBetaDerivatives = np.array(momentCoefficientBetaDerivatives, dtype=np.float64)

    def getForceCoefficients(self, angleOfAttack=0.0, sideslipAngle=0.0) -> np.ndarray:
        return self.forceCoefficients

    def getMomentCoefficients(self, angleOfAttack=0.0, sideslipAngle=0.0) -> np.ndarray:
        return self.momentCoefficients + self.momentCoefficientAlphaDerivatives*angleOfAttack + self.momentCoefficientBetaDerivatives*sideslipAngle

    def getForceInAerodynamicFrame(self, dynamicPressure, angleOfAttack=0.0, sideslipAngle=0.0) -> np.ndarray:
        return -dynamicPressure * self.referenceArea * self.getForceCoefficients(angleOfAttack, sideslipAngle)

    def getMomentInBodyFrame(self, dynamicPressure, angleOfAttack=0.0, sideslipAngle=0.0) -> np.ndarray:
        return dynamicPressure * self.referenceArea * self.referenceLength * self.getMomentCoefficients(angleOfAttack, sideslipAngle)

def aerodynamicCoefficientsFactory(aeroDictReader) -> AerodynamicCoefficients:
    '''
        aeroDictReader: `SPINDLE.IO.SubDictReader` pointed at a body's Aero dictionary

        Reads:
            referenceArea, referenceLength
            forceCoefficients:                      (CD CS CL)
            momentCoefficients:                     (Cl Cm Cn)
            momentCoefficientAlphaDerivatives:      (dCl/da dCm/da dCn/da), per radian
            momentCoefficientBetaDerivatives:       (dCl/db dCm/db dCn/db), per radian
    '''
    coefficients = {}
    for key in [ "forceCoefficients", "momentCoefficients", "momentCoefficientAlphaDerivatives", "momentCoefficientBetaDerivatives" ]:
        coefficients[key] = aeroDictReader.getVector(key)
        if len(coefficients[key]) != 3:
            raise ValueError("{} must have three components, got: {}".format(key, coefficients[key]))

    return AerodynamicCoefficients(aeroDictReader.getFloat("referenceArea"), aeroDictReader.getFloat("referenceLength"), **coefficients)
