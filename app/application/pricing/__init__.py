"""
Pricing bounded context: application layer.

Use cases orchestrate domain services and ports:
- ComputeFeaturesUseCase
- GenerateForecastUseCase
- GetPredictionsUseCase
- ValidatePredictionsUseCase
- SummarizeAccuracyUseCase
"""
