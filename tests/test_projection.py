from datetime import date
from decimal import Decimal

import pytest

from loan_ledger.data_models import Loan
from loan_ledger.errors import InvalidLoanError, InvalidTermError
from loan_ledger.projection import (
    SIMULATION_CAP_MONTHS,
    advance_balance,
    annuity_payment,
    compute_projection,
    monthly_payment_for,
    monthly_rate,
    simulate_payoff,
)


def _loan(**overrides):
    fields = dict(
        id="l1",
        principal=Decimal("25000"),
        annual_interest_rate=Decimal("5.5"),
        term_months=60,
        start_date=date(2024, 1, 1),
    )
    fields.update(overrides)
    return Loan(**fields)


class TestMonthlyPayment:
    def test_annuity_matches_closed_form(self):
        projection = compute_projection(_loan())
        assert float(projection.monthly_payment) == pytest.approx(477.53, abs=0.01)

    def test_zero_rate_is_straight_line(self):
        loan = _loan(principal=Decimal("12000"), annual_interest_rate=Decimal("0"), term_months=24)
        assert monthly_payment_for(loan) == Decimal("500")

    def test_annuity_rejects_non_positive_term(self):
        with pytest.raises(InvalidTermError):
            annuity_payment(Decimal("1000"), Decimal("0.01"), 0)

    def test_minimum_payment_takes_precedence(self):
        loan = _loan(term_months=0, minimum_payment=Decimal("150"))
        assert monthly_payment_for(loan) == Decimal("150")

    def test_non_positive_minimum_is_ignored(self):
        loan = _loan(term_months=0, minimum_payment=Decimal("0"))
        assert loan.is_degenerate
        assert monthly_payment_for(loan) == Decimal("0")

    def test_monthly_rate(self):
        assert monthly_rate(Decimal("12")) == Decimal("0.01")


class TestFixedTerm:
    def test_schedule_covers_term_and_pays_off(self):
        loan = _loan()
        projection = compute_projection(loan)
        assert len(projection.schedule) == loan.term_months + 1
        assert projection.schedule[0].balance == loan.principal
        assert projection.schedule[0].interest == 0
        assert projection.schedule[-1].month == loan.term_months
        assert projection.schedule[-1].balance == 0
        assert projection.payoff_months == loan.term_months
        assert not projection.capped

    def test_balances_never_increase_or_go_negative(self):
        projection = compute_projection(_loan(annual_interest_rate=Decimal("19.99"), term_months=84))
        balances = [e.balance for e in projection.schedule]
        assert all(b >= 0 for b in balances)
        assert balances == sorted(balances, reverse=True)

    def test_interest_and_principal_add_up_to_payment(self):
        projection = compute_projection(_loan())
        for entry in projection.schedule[1:-1]:
            assert entry.interest + entry.principal == pytest.approx(projection.monthly_payment)

    def test_total_interest_close_to_payments_minus_principal(self):
        loan = _loan()
        projection = compute_projection(loan)
        expected = projection.monthly_payment * loan.term_months - loan.principal
        assert float(projection.total_interest) == pytest.approx(float(expected), abs=0.01)
        assert projection.total_cost(loan.principal) == loan.principal + projection.total_interest

    def test_zero_rate_schedule(self):
        projection = compute_projection(_loan(principal=Decimal("1200"), annual_interest_rate=Decimal("0"), term_months=12))
        assert len(projection.schedule) == 13
        assert projection.total_interest == 0
        assert all(e.principal == Decimal("100") for e in projection.schedule[1:])

    @pytest.mark.parametrize("term", [1, 7, 360])
    def test_never_longer_than_term(self, term):
        projection = compute_projection(_loan(principal=Decimal("333333.33"), annual_interest_rate=Decimal("7.13"), term_months=term))
        assert len(projection.schedule) <= term + 1

    def test_rendering_horizon_does_not_change_payoff_math(self):
        loan = _loan(principal=Decimal("300000"), annual_interest_rate=Decimal("6.5"), term_months=360)
        full = compute_projection(loan)
        capped = compute_projection(loan, horizon=60)
        assert capped.schedule[-1].month == 60
        assert len(capped.schedule) == 61
        assert capped.total_interest == full.total_interest
        assert capped.payoff_months == 360
        assert capped.monthly_payment == full.monthly_payment


class TestOpenEnded:
    def test_minimum_payment_pays_off(self):
        loan = _loan(principal=Decimal("1000"), annual_interest_rate=Decimal("12"), term_months=0, minimum_payment=Decimal("100"))
        projection = compute_projection(loan)
        assert projection.monthly_payment == Decimal("100")
        assert projection.schedule[-1].balance == 0
        assert projection.payoff_months == 11
        assert not projection.capped
        assert not projection.interest_estimated
        assert projection.total_interest == projection.simulated_interest

    def test_minimum_below_interest_terminates_at_cap(self):
        # 2 % a month on 10 000 accrues 200, more than the 150 minimum
        loan = _loan(principal=Decimal("10000"), annual_interest_rate=Decimal("24"), term_months=0, minimum_payment=Decimal("150"))
        projection = compute_projection(loan)
        assert projection.capped
        assert projection.interest_estimated
        assert projection.schedule[-1].month == SIMULATION_CAP_MONTHS
        assert len(projection.schedule) == SIMULATION_CAP_MONTHS + 1
        assert projection.total_interest == loan.principal * Decimal("0.02") * SIMULATION_CAP_MONTHS
        cumulative = [e.cumulative_interest for e in projection.schedule]
        assert cumulative == sorted(cumulative)
        assert all(e.balance == loan.principal for e in projection.schedule)

    def test_slow_amortization_uses_estimate_at_cap(self):
        loan = _loan(principal=Decimal("20000"), annual_interest_rate=Decimal("18"), term_months=0, minimum_payment=Decimal("302"))
        projection = compute_projection(loan)
        assert projection.capped
        assert projection.schedule[-1].balance > 0
        assert projection.simulated_interest != projection.total_interest
        assert projection.total_interest == loan.principal * monthly_rate(loan.annual_interest_rate) * SIMULATION_CAP_MONTHS


class TestDegenerateAndInvalid:
    def test_no_term_no_minimum_has_single_entry(self):
        projection = compute_projection(_loan(term_months=0))
        assert projection.monthly_payment == 0
        assert len(projection.schedule) == 1
        assert projection.schedule[0].month == 0
        assert projection.total_interest == 0

    @pytest.mark.parametrize("principal", [Decimal("0"), Decimal("-5")])
    def test_non_positive_principal(self, principal):
        with pytest.raises(InvalidLoanError):
            compute_projection(_loan(principal=principal))

    @pytest.mark.parametrize("rate", [Decimal("-1"), Decimal("100.01")])
    def test_rate_out_of_range(self, rate):
        with pytest.raises(InvalidLoanError):
            compute_projection(_loan(annual_interest_rate=rate))

    def test_negative_term(self):
        with pytest.raises(InvalidTermError):
            compute_projection(_loan(term_months=-3))


class TestAdvanceBalance:
    def test_payment_equal_to_interest_leaves_balance(self):
        balance, interest, principal = advance_balance(Decimal("12000"), Decimal("120"), Decimal("0.01"))
        assert interest == Decimal("120")
        assert principal == 0
        assert balance == Decimal("12000")

    def test_overpayment_clamps_at_zero(self):
        balance, _, principal = advance_balance(Decimal("50"), Decimal("500"), Decimal("0.01"))
        assert balance == 0
        assert principal == Decimal("50")

    def test_simulate_payoff(self):
        estimate = simulate_payoff(Decimal("1000"), Decimal("100"), Decimal("0.01"))
        assert estimate.paid_off
        assert estimate.months == 11
        assert estimate.total_interest > 0

    def test_simulate_payoff_without_payment(self):
        estimate = simulate_payoff(Decimal("1000"), Decimal("0"), Decimal("0.01"))
        assert estimate.months == 0
        assert not estimate.paid_off
