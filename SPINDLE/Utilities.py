import math

import numpy as np

__all__ = [ "cacheLastResult", "evalExpression", "strtobool" ]

def cacheLastResult(func):
    '''
        Function decorator that caches that function's last return value.
        Arguments are compared by value, so that numpy arrays can be passed in as arguments.
            Could use @functools.lru_cache(maxsize=1) for hashable arguments, but the state vectors passed around here are not hashable
    '''
    cache = dict()
    cache[1] = None # Cache last argument list here
    cache[2] = None # Cache last result here

    def _argumentsMatch(args1, args2):
        if args1 is None or len(args1) != len(args2):
            return False
        for a, b in zip(args1, args2):
            if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
                if not np.array_equal(a, b):
                    return False
            elif a is not b and a != b:
                return False
        return True

    def memoized_func(*args):
        # Return cached result if available
        if _argumentsMatch(cache[1], args):
            return cache[2]

        # Compute and cache result
        result = func(*args)
        # Arrays are copied, callers may modify them in place later
        cache[1] = tuple(arg.copy() if isinstance(arg, np.ndarray) else arg for arg in args)
        cache[2] = result
        return result

    return memoized_func

def evalExpression(statement: str, additionalVars={}):
    '''
        Evaluates simple numeric expressions found in simulation definition files, ex: "6378137 + 120e3" or "pi/2"
        Functions/constants from the math module are available both directly (pi, sqrt) and through math. (math.pi)
    '''
    globalVars = {
        'math': math, # Make math functions available
        '__builtins__': {}
    }
    for name in dir(math):
        if not name.startswith("_"):
            globalVars[name] = getattr(math, name)

    return eval(statement, globalVars, additionalVars)

def strtobool(value: str) -> bool:
    '''
        Converts a string representation of truth to True or False.
        True values are 'y', 'yes', 't', 'true', 'on', and '1'; false values are 'n', 'no', 'f', 'false', 'off', and '0'.
        Raises ValueError if value is anything else.
    '''
    value = value.strip().lower()
    if value in ('y', 'yes', 't', 'true', 'on', '1'):
        return True
    elif value in ('n', 'no', 'f', 'false', 'off', '0'):
        return False
    else:
        raise ValueError("Invalid truth value: {}".format(value))
