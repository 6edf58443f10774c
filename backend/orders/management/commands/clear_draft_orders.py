from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError

from orders.services import DraftService


class Command(BaseCommand):
    help = "Delete draft (CREATING) orders, optionally only those untouched for a while"

    def add_arguments(self, parser):
        parser.add_argument(
            "--older-than",
            type=int,
            default=None,
            metavar="MINUTES",
            help="Only delete drafts not updated in the last MINUTES minutes",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be deleted without making changes",
        )

    def handle(self, *args, **options):
        minutes = options["older_than"]
        dry_run = options["dry_run"]
        if minutes is not None and minutes < 0:
            raise CommandError("--older-than must be zero or a positive number of minutes")

        older_than = timedelta(minutes=minutes) if minutes is not None else None
        scope = f"older than {minutes} minutes" if minutes is not None else "of any age"

        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE - No changes will be made"))
            drafts = DraftService.draft_queryset(older_than)
            count = drafts.count()
            sessions = drafts.values("session_key").distinct().count()
            self.stdout.write(
                self.style.WARNING(
                    f"DRY RUN: Would delete {count} draft orders {scope} across {sessions} sessions"
                )
            )
            return

        count = DraftService.delete_all_draft_orders(older_than=older_than)
        self.stdout.write(self.style.SUCCESS(f"Successfully deleted {count} draft orders {scope}"))
