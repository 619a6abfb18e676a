from sqlalchemy import Column, Date, ForeignKey, Integer, Numeric, String

from db.base import Base


class MachineModel(Base):
    __tablename__ = "model"

    model_id = Column(Integer, primary_key=True)
    model_name = Column(String(255))


class Machine(Base):
    __tablename__ = "machines"

    machine_id = Column(String(50), primary_key=True)
    serial_number = Column(String(255))
    model_id = Column(Integer, ForeignKey("model.model_id"))
    category = Column(String(100))
    capacity = Column(Numeric(10, 2))
    purchase_date = Column(Date)
    status = Column(String(50))


class Customer(Base):
    __tablename__ = "customers"

    customer_id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)


class Operator(Base):
    __tablename__ = "operators"

    operator_id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)


class Rental(Base):
    __tablename__ = "rentals"

    rental_id = Column(Integer, primary_key=True, autoincrement=True)
    machine_id = Column(String(50), ForeignKey("machines.machine_id"), nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.customer_id"))
    operator_id = Column(Integer, ForeignKey("operators.operator_id"))
    start_date = Column(Date)
    expected_return_date = Column(Date)
    actual_return_date = Column(Date)
    rental_status = Column(String(20), default="Active")
