"""
Tests for the command line interface and configuration.
"""
import io
import unittest
from unittest.mock import patch

from wholesale_portal.config import Config, config
from wholesale_portal.main import build_parser, main


class TestNextDeliveryCommand(unittest.TestCase):

    def run_main(self, argv):
        with patch('sys.stdout', new_callable=io.StringIO) as stdout, \
                patch('sys.stderr', new_callable=io.StringIO) as stderr:
            exit_code = main(argv)
        return exit_code, stdout.getvalue(), stderr.getvalue()

    def test_prints_next_delivery_date(self):
        exit_code, stdout, _ = self.run_main([
            'next-delivery', '--days', 'monday,thursday', '--cutoff', '14:00', '--offset', '1',
            '--now', '2024-01-03T10:00'
        ])

        self.assertEqual(exit_code, 0)
        self.assertEqual(stdout.strip(), '2024-01-04')

    def test_after_cutoff(self):
        exit_code, stdout, _ = self.run_main([
            'next-delivery', '--days', 'monday,thursday', '--cutoff', '14:00', '--offset', '1',
            '--now', '2024-01-03T15:00'
        ])

        self.assertEqual(exit_code, 0)
        self.assertEqual(stdout.strip(), '2024-01-08')

    def test_invalid_day_reports_error(self):
        exit_code, _, stderr = self.run_main([
            'next-delivery', '--days', 'funday', '--cutoff', '14:00', '--now', '2024-01-03T10:00'
        ])

        self.assertEqual(exit_code, 1)
        self.assertIn('invalid-delivery-day', stderr)

    def test_malformed_now_reports_error(self):
        exit_code, _, stderr = self.run_main([
            'next-delivery', '--days', 'monday', '--cutoff', '14:00', '--now', 'not-a-date'
        ])

        self.assertEqual(exit_code, 1)
        self.assertIn('validation-error', stderr)
        self.assertNotIn('Traceback', stderr)

    def test_days_or_client_required(self):
        exit_code, _, stderr = self.run_main(['next-delivery'])

        self.assertEqual(exit_code, 1)
        self.assertIn('--client-id or --days', stderr)

    def test_no_command_prints_help(self):
        exit_code, stdout, _ = self.run_main([])

        self.assertEqual(exit_code, 1)
        self.assertIn('next-delivery', stdout)

    def test_parser_defaults(self):
        args = build_parser().parse_args(['orders'])
        self.assertIsNone(args.status)
        self.assertEqual(args.limit, 50)


class TestConfig(unittest.TestCase):

    def test_singleton(self):
        self.assertIs(Config(), config)

    def test_ordering_defaults(self):
        ordering = config.ordering_config
        self.assertEqual(ordering['search_weeks'], 6)
        self.assertIn(':', ordering['default_cutoff_time'])

    def test_database_url_from_environment(self):
        with patch.dict('os.environ', {'DATABASE_URL': 'sqlite:///env.db'}):
            self.assertEqual(config.get_db_url(), 'sqlite:///env.db')

    def test_set_is_in_memory(self):
        original = config.get('ORDERING', 'search_weeks')
        try:
            config.set('ORDERING', 'search_weeks', 8)
            self.assertEqual(config.ordering_config['search_weeks'], 8)
        finally:
            config.set('ORDERING', 'search_weeks', original)


if __name__ == '__main__':
    unittest.main()
