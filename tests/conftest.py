import pytest

from retireplan.data_model import Profile


@pytest.fixture
def profile():
    return Profile(birth_year=1982, retirement_age=65, target_net_assets=100000.0)


@pytest.fixture
def scenario_records():
    """Salary, living costs and an interest-only mortgage, as of 2024."""
    return {
        "incomes": [
            {
                "title": "근로소득",
                "amount": 450,
                "frequency": "monthly",
                "growthRate": 3.3,
                "startYear": 2024,
                "endYear": 2032,
            }
        ],
        "expenses": [
            {
                "title": "생활비",
                "amount": 300,
                "frequency": "monthly",
                "growthRate": 1.89,
                "startYear": 2024,
                "endYear": 2047,
            }
        ],
        "debts": [
            {
                "title": "주택담보대출",
                "principal": 20000,
                "interestRate": 4.5,
                "startYear": 2024,
                "endYear": 2030,
                "repaymentType": "bullet",
            }
        ],
    }


@pytest.fixture
def mixed_records(scenario_records):
    records = dict(scenario_records)
    records.update(
        {
            "savings": [
                {
                    "title": "적금",
                    "amount": 100,
                    "frequency": "monthly",
                    "currentBalance": 1000,
                    "interestRate": 3,
                    "startYear": 2024,
                    "endYear": 2026,
                }
            ],
            "pensions": [
                {"title": "국민연금", "monthlyAmount": 100, "startAge": 65, "growthRate": 2},
                {"title": "개인연금", "monthlyAmount": 50, "startAge": 60, "endAge": 70, "currentBalance": 3000, "returnRate": 4},
            ],
            "realEstates": [
                {
                    "title": "상가",
                    "currentValue": 30000,
                    "appreciationRate": 2,
                    "isRental": True,
                    "monthlyRentalIncome": 100,
                    "startYear": 2024,
                    "endYear": 2035,
                    "liquidateAtEndYear": True,
                },
                {
                    "title": "자택",
                    "currentValue": 60000,
                    "appreciationRate": 1.5,
                    "housingPensionMonthly": 150,
                    "housingPensionStartYear": 2050,
                },
            ],
            "assets": [
                {"title": "주식 계좌", "currentValue": 5000, "growthRate": 6, "incomeYield": 2},
            ],
        }
    )
    records["debts"] = records["debts"] + [
        {"title": "신용대출", "principal": 3000, "interestRate": 6, "termYears": 5, "repaymentType": "equal_payment"},
        {"title": "학자금", "principal": 1000, "interestRate": 2, "endYear": 2028, "repaymentType": "equal_principal"},
        {"title": "차량 할부", "principal": 2000, "interestRate": 5, "startYear": 2027, "endYear": 2031, "repaymentType": "grace", "graceYears": 2},
    ]
    return records
