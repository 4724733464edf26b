"""
constants
=========

Physical and numerical constants shared by the tunneling calculations.

All values are fixed at import time and exposed both as module-level names and
through the read-only mapping :data:`PHYSICAL_CONSTANTS`. Nothing in the
package modifies them.
"""

import math
import sys
from types import MappingProxyType

# Largest x such that exp(x) stays below half the largest representable double.
maximumPowerOfNaturalExponent: float = math.log(0.5 * sys.float_info.max)

# Reduced Planck mass in GeV, used as the highest temperature we ever consider.
maximumAllowedTemperature: float = 2.435e18

hBarInGigaElectronVoltSeconds: float = 6.58211928e-25

ageOfKnownUniverseInSeconds: float = 4.3e17

ageOfKnownUniverseInInverseGigaElectronVolts: float = (
    ageOfKnownUniverseInSeconds / hBarInGigaElectronVoltSeconds
)

# Survival probability per horizon, from [decay width per horizon]
# = [horizon volume] * [solitonic coefficient] * exp(-S_3(T)/T) with
# [horizon volume] = (M_Planck / T^2)^3 and [solitonic coefficient] = T^4:
#   P = exp( -N * integral of C T^(-2) exp(-S_3(T)/T) dT ),
# C = [reduced Planck mass] * sqrt(45 / (4 pi^3 g_star)) * [g_star^now / g_star]
#     * (T_now / H_now)^3,
# with g_star = 105.75 held constant from T = 0 up to T_dom. This gives
#   P = exp( -1.581E+106 GeV * integral of T^(-2) exp(-S_3(T)/T) dT )
# and 1.581E+106 = exp(244.53), consistent with the S_3(T)/T ~ 240 threshold
# quoted in the CosmoTransitions manual at T = 100 GeV. The integral is
# estimated by exp(-S_3(T_dom)/T_dom) / T_dom, T_dom being the temperature
# that dominates it, so ln(-ln P) is compared as
#   lnOfThermalIntegrationFactor - S_3(T_dom)/T_dom - ln(T_dom / GeV).
lnOfThermalIntegrationFactor: float = 244.53

# Sentinel for result fields whose calculation did not run.
NOT_CALCULATED: float = -1.0

# Clamp values used when exponentials would overflow.
cappedLifetimeInSeconds: float = 1.0e100
flooredLifetimeInSeconds: float = 0.1
cappedDecayWidth: float = 1.0e100

PHYSICAL_CONSTANTS = MappingProxyType(
    {
        "maximumPowerOfNaturalExponent": maximumPowerOfNaturalExponent,
        "maximumAllowedTemperature": maximumAllowedTemperature,
        "hBarInGigaElectronVoltSeconds": hBarInGigaElectronVoltSeconds,
        "ageOfKnownUniverseInSeconds": ageOfKnownUniverseInSeconds,
        "ageOfKnownUniverseInInverseGigaElectronVolts": (
            ageOfKnownUniverseInInverseGigaElectronVolts
        ),
        "lnOfThermalIntegrationFactor": lnOfThermalIntegrationFactor,
        "NOT_CALCULATED": NOT_CALCULATED,
    }
)

__all__ = [
    "PHYSICAL_CONSTANTS",
    "maximumPowerOfNaturalExponent",
    "maximumAllowedTemperature",
    "hBarInGigaElectronVoltSeconds",
    "ageOfKnownUniverseInSeconds",
    "ageOfKnownUniverseInInverseGigaElectronVolts",
    "lnOfThermalIntegrationFactor",
    "NOT_CALCULATED",
    "cappedLifetimeInSeconds",
    "flooredLifetimeInSeconds",
    "cappedDecayWidth",
]
