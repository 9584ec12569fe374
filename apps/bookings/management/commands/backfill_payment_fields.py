from django.core.management.base import BaseCommand
from django.db import transaction
from django.db.models import F

from apps.bookings.domain.entities import BookingStatus, HotelPaymentStatus
from apps.bookings.domain.errors import ValidationError
from apps.bookings.models import Booking
from apps.properties.models import Property


class Command(BaseCommand):
    help = (
        "Backfills split payment fields on bookings created before partial payments "
        "and reports properties with invalid payment settings"
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only report what would change",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]

        full_payment = Booking.objects.filter(is_partial_payment=False)
        unsplit = full_payment.exclude(
            online_payment_amount=F("total_amount"),
            hotel_payment_amount=0,
        )
        settled = full_payment.filter(
            status=BookingStatus.COMPLETED.value,
            hotel_payment_status=HotelPaymentStatus.PENDING.value,
        )

        self.stdout.write(f"Found {unsplit.count()} full-payment bookings without an online/hotel split")
        self.stdout.write(f"Found {settled.count()} completed full-payment bookings with a pending hotel payment")

        if dry_run:
            self.stdout.write(self.style.WARNING("Dry run, nothing was changed"))
        else:
            with transaction.atomic():
                split_count = unsplit.update(
                    online_payment_amount=F("total_amount"),
                    hotel_payment_amount=0,
                )
                collected_count = settled.update(hotel_payment_status=HotelPaymentStatus.COLLECTED.value)
            self.stdout.write(self.style.SUCCESS(
                f"Updated {split_count} booking splits, marked {collected_count} hotel payments as collected"
            ))

        invalid = 0
        for property_obj in Property.objects.order_by("title"):
            try:
                property_obj.payment_settings()
            except ValidationError as e:
                invalid += 1
                self.stdout.write(self.style.ERROR(f"Property {property_obj.pk} ({property_obj.title}): {e}"))

        if invalid:
            self.stdout.write(self.style.WARNING(f"{invalid} properties have invalid payment settings"))
        else:
            self.stdout.write(self.style.SUCCESS("All property payment settings are valid"))
