import random
import unittest

from cashier import create_app
from cashier.extensions import db
from cashier.models import User, Transaction
from cashier.services.errors import InvoiceGenerationError
from cashier.services.invoice_service import generate_invoice, invoice_exists


class InvoiceServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "TESTING": True,
            "INVOICE_PREFIX": "TRX",
            "INVOICE_SUFFIX_LENGTH": 10,
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(Transaction).delete()
        db.session.query(User).delete()
        db.session.commit()

        self.cashier = User(name="Invoice Cashier", email="invoice@test.local")
        db.session.add(self.cashier)
        db.session.commit()

    def _commit_invoice(self, invoice):
        db.session.add(Transaction(invoice=invoice, cashier_id=self.cashier.id, grand_total_cents=0))
        db.session.commit()

    def test_format(self):
        invoice = generate_invoice(rng=random.Random(7))

        prefix, suffix = invoice.split("-", 1)
        self.assertEqual(prefix, "TRX")
        self.assertEqual(len(suffix), 10)
        self.assertTrue(suffix.isalnum())
        self.assertEqual(suffix, suffix.upper())

    def test_prefix_and_length_overrides(self):
        invoice = generate_invoice(prefix="INV", length=4, rng=random.Random(1))

        self.assertRegex(invoice, r"^INV-[0-9A-Z]{4}$")

    def test_redraws_on_collision(self):
        taken = generate_invoice(rng=random.Random(42))
        self._commit_invoice(taken)

        # Same seed replays the taken value first, then moves on
        invoice = generate_invoice(rng=random.Random(42))

        self.assertNotEqual(invoice, taken)
        self.assertTrue(invoice_exists(taken))
        self.assertFalse(invoice_exists(invoice))

    def test_gives_up_after_attempts(self):
        with self.assertRaises(InvoiceGenerationError):
            generate_invoice(exists=lambda candidate: True, attempts=3)

    def test_many_invoices_are_unique(self):
        issued = set()
        for _ in range(200):
            invoice = generate_invoice(exists=lambda candidate: candidate in issued)
            issued.add(invoice)
        self.assertEqual(len(issued), 200)


if __name__ == "__main__":
    unittest.main()
