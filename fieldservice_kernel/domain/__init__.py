"""Pure domain layer: values, lifecycle, eligibility, schedule, serials."""
