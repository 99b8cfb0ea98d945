"""
Rental Modules.

Persistence and orchestration layers over the rental kernel and the pure
schedule engines.  Each module contains:
- Domain models (the records it adds)
- ORM models (the tables it owns)
- A service facade that owns transaction boundaries

Modules:
- Schedules: agreements, payment schedules, payment ledger, late fees
"""
