"""
Prompt Templates

Three prompt families, one per response style:

1. JSON PROMPTS (primary Gemini, local Ollama):
   The model is asked for a JSON object in exactly the result model's
   wire shape, so the answer can be validated directly.

2. GENAI-NATIVE PROMPTS (secondary SDK):
   Shapes the secondary provider was tuned on. Its answers are
   normalized into the result model by the adapter.

3. LABELLED-TEXT PROMPTS (Hugging Face):
   Small instruction models follow "Label: value" lines far more
   reliably than JSON. The adapter parses them with regular expressions.

The model is a FORMATTER of the caller's numbers. Prompts always include
the data and never ask the model to invent figures.
"""

import json

from pydantic import BaseModel

from fin_insights.models.features import (
    CategorizeTransactionInput,
    DetectSpendingAnomaliesInput,
    Feature,
    FinancialInsightsInput,
    PredictIncomeInput,
    WeeklySummaryInput,
)


def _money_map(values: dict[str, float]) -> str:
    if not values:
        return "none"
    return ", ".join(f"{name}: {amount:.2f}" for name, amount in values.items())


def _income_lines(request: PredictIncomeInput) -> str:
    return "\n".join(
        f"{point.date}: {point.income:.2f}" for point in request.historical_income
    )


# =============================================================================
# JSON PROMPTS
# =============================================================================

_JSON_SHAPES: dict[Feature, str] = {
    Feature.FINANCIAL_INSIGHTS: """{
  "summary": "2-3 sentence summary of their financial health",
  "savingsOpportunities": ["opportunity 1", "opportunity 2", "opportunity 3"],
  "spendingHabits": "2-3 sentence analysis of their spending patterns"
}""",
    Feature.INCOME_PREDICTION: """{
  "predictedIncome": <number>,
  "confidenceInterval": "e.g. 95% confidence interval is +/- 1000",
  "factors": "factors behind the prediction: seasonality, trends, anomalies"
}""",
    Feature.SPENDING_ANOMALIES: """{
  "anomalies": [
    {
      "category": "category name",
      "amount": <number>,
      "deviation": "e.g. 45% higher than usual",
      "reason": "why this is unusual"
    }
  ]
}""",
    Feature.WEEKLY_SUMMARY: """{
  "summary": "2-3 sentences about this week's financial activity",
  "trends": "key changes compared to the previous week",
  "opportunities": "specific recommendations for next week"
}""",
    Feature.TRANSACTION_CATEGORIZATION: """{
  "category": "most likely category",
  "confidence": <number between 0 and 1>,
  "reason": "brief explanation",
  "alternativeCategories": ["category 1", "category 2"]
}""",
}


def _insights_context(request: FinancialInsightsInput) -> str:
    return f"""You are a personal finance advisor. Analyze the user's financial data and provide insights and advice.

Income: {request.income:.2f}
Expenses: {request.expenses:.2f}
Savings: {request.savings:.2f}
Spending by Category: {_money_map(request.spending_by_category)}
Recurring Expenses: {_money_map(request.recurring_expenses)}

Provide a summary of their financial situation, identify potential saving opportunities, and analyze their spending habits.
Be concise and actionable."""


def _prediction_context(request: PredictIncomeInput) -> str:
    return f"""You are an expert financial analyst. You will be provided with historical income data and any relevant seasonality information.
Predict the user's income for the next month and provide a confidence interval for the prediction.
Describe the factors that influenced the prediction, including seasonality, trends, and anomalies.

Historical Income Data:
{_income_lines(request)}

Seasonality:
{request.seasonality or "No seasonality information provided"}"""


def _anomaly_context(request: DetectSpendingAnomaliesInput) -> str:
    return f"""You are a financial analyst specializing in anomaly detection. Compare recent spending with the historical monthly averages.

Recent Spending by Category: {_money_map(request.spending_by_category)}
Average Monthly Spending by Category: {_money_map(request.average_spending_by_category)}

Report only significant deviations (more than 20% from normal). If nothing is unusual, return an empty "anomalies" list."""


def _weekly_context(request: WeeklySummaryInput) -> str:
    return f"""You are a financial advisor providing a weekly summary to a user based on their financial data.

Income: {request.income:.2f}
Expenses: {request.expenses:.2f}
Savings: {request.savings:.2f}
Spending by Category: {_money_map(request.spending_by_category)}

Previous Week Income: {request.previous_week_income:.2f}
Previous Week Expenses: {request.previous_week_expenses:.2f}
Previous Week Savings: {request.previous_week_savings:.2f}

Provide a summary of the user's financial activity, key trends, and potential saving opportunities.
Be concise and actionable."""


def _categorize_context(request: CategorizeTransactionInput) -> str:
    lines = [
        "You are an AI financial assistant that categorizes transactions for freelancers and consultants.",
        "",
        "Transaction Details:",
        f"Description: {request.description}",
        f"Amount: {request.amount:.2f}",
        f"Type: {request.transaction_type.value}",
    ]
    if request.vendor:
        lines.append(f"Vendor/Client: {request.vendor}")
    lines.append("")
    lines.append(
        "Existing Categories: " + (", ".join(request.existing_categories) or "none")
    )
    if request.user_history:
        lines.extend(["", "Similar Past Transactions:", request.user_history])
    lines.extend([
        "",
        "Instructions:",
        "1. Choose the most appropriate category from the existing categories, or suggest a new one",
        "2. Base the confidence score on how clear the categorization is",
        "3. Give brief reasoning for your choice",
        "4. Suggest 2-3 alternative categories if applicable",
    ])
    return "\n".join(lines)


_CONTEXT_BUILDERS = {
    Feature.FINANCIAL_INSIGHTS: _insights_context,
    Feature.INCOME_PREDICTION: _prediction_context,
    Feature.SPENDING_ANOMALIES: _anomaly_context,
    Feature.WEEKLY_SUMMARY: _weekly_context,
    Feature.TRANSACTION_CATEGORIZATION: _categorize_context,
}


def build_json_prompt(feature: Feature, request: BaseModel) -> str:
    """
    Build a prompt asking for the result model's JSON shape.

    Used by the primary and local adapters.
    """
    context = _CONTEXT_BUILDERS[feature](request)
    return f"""{context}

Respond with ONLY a JSON object in this exact format:
{_JSON_SHAPES[feature]}

Populate every field. Do not add commentary outside the JSON object."""


# =============================================================================
# GENAI-NATIVE PROMPTS
# =============================================================================

def build_genai_prompt(feature: Feature, request: BaseModel) -> str:
    """Build the secondary SDK's native-shape prompt for a feature."""
    if feature == Feature.FINANCIAL_INSIGHTS:
        # Native shape equals the result shape
        return build_json_prompt(feature, request)

    if feature == Feature.INCOME_PREDICTION:
        return f"""You are a financial analyst. Based on the following historical income data, predict the next month's income.

Historical Income Data:
{_income_lines(request)}

Seasonality: {request.seasonality or "unknown"}

Analyze the trend and provide your prediction in the following JSON format:
{{
  "predictedIncome": <number>,
  "confidence": <number between 0 and 1>,
  "trend": "<increasing|decreasing|stable>",
  "insights": "Brief explanation of your prediction (1-2 sentences)"
}}"""

    if feature == Feature.SPENDING_ANOMALIES:
        return f"""You are a financial analyst specializing in anomaly detection. Analyze the following spending data for unusual patterns.

Recent Spending by Category:
{json.dumps(request.spending_by_category)}

Average Spending by Category:
{json.dumps(request.average_spending_by_category)}

Identify any spending anomalies and provide your analysis in the following JSON format:
{{
  "anomalies": [
    {{
      "category": "category name",
      "amount": <number>,
      "severity": "<high|medium|low>",
      "description": "Brief explanation of why this is anomalous"
    }}
  ],
  "summary": "Overall summary of spending patterns (1-2 sentences)"
}}

Focus on significant deviations from normal spending patterns."""

    if feature == Feature.WEEKLY_SUMMARY:
        return f"""You are a personal finance advisor. Write a weekly digest for the user.

This Week: income {request.income:.2f}, expenses {request.expenses:.2f}, savings {request.savings:.2f}
Previous Week: income {request.previous_week_income:.2f}, expenses {request.previous_week_expenses:.2f}, savings {request.previous_week_savings:.2f}
Spending by Category: {json.dumps(request.spending_by_category)}

Provide your digest in the following JSON format:
{{
  "summary": "2-3 sentence overview of the week",
  "keyTrends": ["trend 1", "trend 2"],
  "recommendations": ["recommendation 1", "recommendation 2"]
}}"""

    if feature == Feature.TRANSACTION_CATEGORIZATION:
        return f"""{_categorize_context(request)}

Provide your answer in the following JSON format:
{{
  "category": "category name",
  "confidence": <number between 0 and 1>,
  "reason": "brief explanation",
  "alternatives": ["category 1", "category 2"]
}}"""

    raise ValueError(f"Unsupported feature: {feature}")


# =============================================================================
# LABELLED-TEXT PROMPTS
# =============================================================================

def build_labelled_prompt(feature: Feature, request: BaseModel) -> str:
    """Build the labelled-line prompt used with small hosted models."""
    if feature == Feature.FINANCIAL_INSIGHTS:
        return f"""Analyze this financial data:

Income: {request.income:.2f}
Expenses: {request.expenses:.2f}
Savings: {request.savings:.2f}
Spending by Category: {json.dumps(request.spending_by_category)}
Recurring Expenses: {json.dumps(request.recurring_expenses)}

Respond using exactly these labels:
Summary: [Brief financial health summary (2-3 sentences)]
Opportunities: [3 specific savings opportunities, numbered 1. 2. 3.]
Habits: [Analysis of spending patterns (2-3 sentences)]"""

    if feature == Feature.INCOME_PREDICTION:
        return f"""Predict next month's income from this history:

{_income_lines(request)}

Seasonality: {request.seasonality or "unknown"}

Respond using exactly these labels:
Predicted: [amount]
Confidence: [percentage]% confidence interval
Factors: [key factors affecting prediction]"""

    if feature == Feature.SPENDING_ANOMALIES:
        return f"""Analyze spending data for anomalies:

Recent expenses: {json.dumps(request.spending_by_category)}
Historical averages: {json.dumps(request.average_spending_by_category)}

Identify spending anomalies (>20% deviation from normal). Format each anomaly as one line:
Category: [name] | Amount: [amount] | Deviation: [% higher/lower] | Reason: [explanation]

Only include significant deviations. If no anomalies, respond with "No anomalies detected." """

    if feature == Feature.WEEKLY_SUMMARY:
        return f"""Summarize this week's finances:

This week: income {request.income:.2f}, expenses {request.expenses:.2f}, savings {request.savings:.2f}
Previous week: income {request.previous_week_income:.2f}, expenses {request.previous_week_expenses:.2f}, savings {request.previous_week_savings:.2f}
Spending by Category: {json.dumps(request.spending_by_category)}

Respond using exactly these labels:
Summary: [2-3 sentences about overall financial performance]
Trends: [Key changes compared to previous week]
Opportunities: [Specific recommendations for improvement]"""

    if feature == Feature.TRANSACTION_CATEGORIZATION:
        categories = ", ".join(request.existing_categories) or "none"
        return f"""Categorize this transaction:

Description: {request.description}
Amount: {request.amount:.2f}
Type: {request.transaction_type.value}
Vendor: {request.vendor or "unknown"}
Existing categories: {categories}

Respond using exactly these labels:
Category: [most likely category]
Confidence: [0-1 decimal]
Reason: [brief explanation]
Alternatives: [category1, category2]"""

    raise ValueError(f"Unsupported feature: {feature}")
