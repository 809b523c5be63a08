"""
Management command that follows the realtime order feed from a terminal.

Subscribes to the feed and prints a summary of the full order list every
time it changes. Needs a shared channel layer (Redis) to see writes made
by other processes.
"""
import asyncio

from channels.db import database_sync_to_async
from django.core.management.base import BaseCommand

from sync.realtime import RealtimeSyncClient, feed_group_name
from sync.services import OrderSnapshotService


class Command(BaseCommand):
    help = 'Print the order list whenever the realtime order feed reports a change'

    def add_arguments(self, parser):
        parser.add_argument(
            '--once',
            action='store_true',
            help='Print the current snapshot and exit',
        )

    def handle(self, *args, **options):
        asyncio.run(self.watch(once=options['once']))

    async def watch(self, once=False):
        client = RealtimeSyncClient()
        feed = feed_group_name()
        subscription = await client.subscribe(feed, self.print_snapshot)
        self.stdout.write(f'Watching {feed} (Ctrl+C to stop)...')

        try:
            if once:
                await subscription.slot.wait_idle()
                return
            while True:
                await asyncio.sleep(3600)
        finally:
            await subscription.release()

    async def print_snapshot(self):
        orders = await database_sync_to_async(OrderSnapshotService.fetch_orders)()
        self.stdout.write(self.style.SUCCESS(f'\n{len(orders)} order(s)'))
        for order in orders:
            lines = ', '.join(f"{item['name']} x{item['quantity']}" for item in order['items'])
            self.stdout.write(f"  [{order['status']}] {order['table_name']}: {lines}")
