"""
Scheduling Domain

Appointment booking for the workshop: rule table, license plate restriction,
slot availability, technician rotation, cancellation and reassignment.

Structure:
```
motoshop/domain/scheduling/
├── enums.py             # Appointment types, statuses, technician states
├── rules.py             # Static rule table per appointment type
├── plate_restriction.py # Pico y placa evaluator
├── availability.py      # Free technicians per slot
├── assignment.py        # Least-loaded technician rotation
├── locking.py           # Per-day booking locks
├── repository.py        # Database queries
├── service.py           # Booking workflows
├── cancellation.py      # Cancel and reassign workflows
├── queries.py           # Agenda, calendar and history reads
├── schemas.py           # Request/response models
└── router.py            # Client and admin endpoints
```
"""
