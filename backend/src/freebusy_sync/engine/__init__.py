# Merge engine, writers and batch synchronization
from .appointment_writer import AppointmentChanges, AppointmentWriter, plan_changes
from .gateway import AppointmentLookupFuture, ExchangeGateway, lookup_appointments
from .merge import merge_free_busy_with_appointments
from .schedule_plus_writer import SchedulePlusWriter
from .sync_process import SyncProcess, SyncReport
from .writer_factory import get_writer

__all__ = [
    "AppointmentChanges",
    "AppointmentWriter",
    "plan_changes",
    "AppointmentLookupFuture",
    "ExchangeGateway",
    "lookup_appointments",
    "merge_free_busy_with_appointments",
    "SchedulePlusWriter",
    "SyncProcess",
    "SyncReport",
    "get_writer",
]
