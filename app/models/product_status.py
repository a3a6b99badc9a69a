# app/models/product_status.py
"""
Read-only mapping of the external refurbishment ("product status") database.

Column names are the other team's legacy names; attribute names are ours.
These tables belong to StatusBase and are never created by create_tables().
"""

from sqlalchemy import Column, Integer, String
from app.database import StatusBase

NOT_DELETED = "N"           # car.c_del_yn
DELETED_TASK_MARK = "DELETE"  # restoration_task.rt_cash_cd
INSPECTION_FAIL = "FAIL"
INSPECTION_PASS = "PASS"


class Car(StatusBase):
    __tablename__ = "car"

    id = Column("c_no", Integer, primary_key=True)
    plate_number = Column("c_carnum", String(20), index=True)
    vin = Column("c_vin", String(50))
    model_year = Column("c_year", String(10))
    mileage = Column("c_mileage", Integer)
    first_registered = Column("c_first_date", String(20))
    maker_id = Column("c_bm_no", Integer)
    model_id = Column("c_bo_no", Integer)
    deleted = Column("c_del_yn", String(1), default=NOT_DELETED)

    def __repr__(self):
        return f"<Car {self.id} plate={self.plate_number}>"


class Maker(StatusBase):
    __tablename__ = "basic_maker"

    id = Column("bm_no", Integer, primary_key=True)
    name = Column("bm_name", String(100))


class CarModel(StatusBase):
    __tablename__ = "basic_model"

    id = Column("bo_no", Integer, primary_key=True)
    name = Column("bo_name", String(100))


class Restoration(StatusBase):
    """One refurbishment job for a car; the highest id is the current one."""
    __tablename__ = "restoration"

    id = Column("r_no", Integer, primary_key=True)
    car_id = Column("r_c_no", Integer, index=True)
    status_code = Column("r_status_cd", String(50))

    def __repr__(self):
        return f"<Restoration {self.id} car={self.car_id} status={self.status_code}>"


class RestorationTask(StatusBase):
    __tablename__ = "restoration_task"

    id = Column("rt_no", Integer, primary_key=True)
    restoration_id = Column("rt_r_no", Integer, index=True)
    status_code = Column("rt_status_cd", String(50))
    inspection_result = Column("outboundInspectionResult", String(10))  # PASS | FAIL | NULL
    cash_code = Column("rt_cash_cd", String(20))                         # "DELETE" marks a removed task
    work_part_id = Column("rt_wp_no", Integer)
    work_group_id = Column("rt_wg_no", Integer)
    work_id = Column("rt_w_no", Integer)

    def __repr__(self):
        return f"<RestorationTask {self.id} restoration={self.restoration_id} status={self.status_code}>"


class WorkPart(StatusBase):
    __tablename__ = "basic_work_part"

    id = Column("wp_no", Integer, primary_key=True)
    title = Column("wp_title", String(100))


class WorkGroup(StatusBase):
    __tablename__ = "basic_work_group"

    id = Column("wg_no", Integer, primary_key=True)
    title = Column("wg_title", String(100))


class Work(StatusBase):
    __tablename__ = "basic_work"

    id = Column("w_no", Integer, primary_key=True)
    title = Column("w_title", String(200))
    position = Column("w_pos", String(50))
