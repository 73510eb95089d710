"""nbuild - incremental native build orchestrator.

Compiles C, C++, Objective-C and Objective-C++ compilation units that are
stale with respect to their sources and transitively included headers, links
executables, dynamic libraries and static archives, and drives external
extension subprojects through their build/install/clean lifecycle.
"""

__version__ = "0.1.0"
