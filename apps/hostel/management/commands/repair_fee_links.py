from django.core.management.base import BaseCommand

from apps.hostel.services import repair_fee_links


class Command(BaseCommand):
    help = 'Point students with an empty fee at their latest payment'

    def handle(self, *args, **options):
        repaired = repair_fee_links()
        if repaired:
            self.stdout.write(self.style.SUCCESS(f'Linked {repaired} students to their payment'))
        else:
            self.stdout.write('Every student payment is already linked')
