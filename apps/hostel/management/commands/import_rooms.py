from django.core.management.base import BaseCommand, CommandError

from apps.hostel.exceptions import ConstraintViolation, ImportRejected
from apps.hostel.services import import_rooms


class Command(BaseCommand):
    help = 'Create rooms from a CSV file with id, hostel_id and capacity columns'

    def add_arguments(self, parser):
        parser.add_argument('path', type=str, help='CSV file to import')

    def handle(self, *args, **options):
        path = options['path']
        try:
            with open(path, 'rb') as handle:
                rooms = import_rooms(handle)
        except FileNotFoundError as exc:
            raise CommandError(f'No such file: {path}') from exc
        except ImportRejected as exc:
            for error in exc.errors:
                self.stderr.write(f"line {error['row']}: {error['error']}")
            raise CommandError(exc.message) from exc
        except ConstraintViolation as exc:
            raise CommandError(exc.message) from exc

        self.stdout.write(self.style.SUCCESS(f'Imported {len(rooms)} rooms from {path}'))
