"""core/ -- Kernel: configuration, database engine construction, error taxonomy.

Layer rule: core/ imports nothing from api/ or auth/.
"""
