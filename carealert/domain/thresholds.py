"""Vital-sign threshold table used by the threshold evaluator."""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class VitalThresholds(BaseModel):
    """
    Band edges for each evaluated vital sign. All comparisons are inclusive.

    Temperatures are in degrees Fahrenheit.
    """

    model_config = ConfigDict(frozen=True)

    systolic_critical: int = Field(default=180, description="Systolic >= this is critical")
    diastolic_critical: int = Field(default=120, description="Diastolic >= this is critical")
    systolic_high: int = Field(default=140)
    diastolic_high: int = Field(default=90)
    systolic_low: int = Field(default=90, description="Systolic <= this is low")
    diastolic_low: int = Field(default=60, description="Diastolic <= this is low")

    heart_rate_critical: int = Field(default=120)
    heart_rate_high: int = Field(default=100)
    heart_rate_low: int = Field(default=60)
    heart_rate_critical_low: int = Field(default=40)

    temperature_critical: float = Field(default=103.0)
    temperature_high: float = Field(default=100.4)
    temperature_low: float = Field(default=96.8)
    temperature_critical_low: float = Field(default=95.0)

    oxygen_low: int = Field(default=95)
    oxygen_critical: int = Field(default=90)

    @model_validator(mode="after")
    def bands_are_ordered(self) -> "VitalThresholds":
        if not (self.heart_rate_critical_low < self.heart_rate_low < self.heart_rate_high
                <= self.heart_rate_critical):
            raise ValueError("heart rate bands must be ordered critical_low < low < high <= critical")
        if not (self.temperature_critical_low < self.temperature_low < self.temperature_high
                <= self.temperature_critical):
            raise ValueError("temperature bands must be ordered")
        if not self.oxygen_critical <= self.oxygen_low:
            raise ValueError("oxygen_critical must not exceed oxygen_low")
        if not (self.systolic_low < self.systolic_high <= self.systolic_critical):
            raise ValueError("systolic bands must be ordered")
        if not (self.diastolic_low < self.diastolic_high <= self.diastolic_critical):
            raise ValueError("diastolic bands must be ordered")
        return self

    @property
    def blood_pressure_range(self) -> str:
        return (
            f"{self.systolic_low}-{self.systolic_high} / "
            f"{self.diastolic_low}-{self.diastolic_high} mmHg"
        )

    @property
    def heart_rate_range(self) -> str:
        return f"{self.heart_rate_low}-{self.heart_rate_high} bpm"

    @property
    def temperature_range(self) -> str:
        return f"{self.temperature_low:g}-{self.temperature_high:g}°F"

    @property
    def oxygen_range(self) -> str:
        return f"{self.oxygen_low}-100%"
